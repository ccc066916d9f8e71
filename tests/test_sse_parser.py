from __future__ import annotations

import pytest

from gateway_ledger.sse import Frame, SseParser


REFERENCE_INPUT = (
    "id: 1\n"
    "event: step\n"
    'data: {"cursor": 1, "record": {"status": "started"}}\n'
    "\n"
    ": keep-alive\n"
    "\n"
    "id: 2\n"
    "event: step\n"
    "data: line1\n"
    "data: line2\n"
    "\n"
)


def _parse_chunks(chunks: list[str]) -> list[Frame]:
    parser = SseParser()
    frames: list[Frame] = []
    for chunk in chunks:
        parser.push(chunk, frames.append)
    return frames


def test_reference_input_in_two_chunks() -> None:
    frames = _parse_chunks([REFERENCE_INPUT[:15], REFERENCE_INPUT[15:]])

    assert len(frames) == 2
    assert frames[0].id == "1"
    assert frames[0].event == "step"
    assert '"cursor": 1' in frames[0].data

    assert frames[1].id == "2"
    assert frames[1].event == "step"
    assert frames[1].data == "line1\nline2"


def test_every_split_point_matches_single_push() -> None:
    expected = _parse_chunks([REFERENCE_INPUT])
    for i in range(len(REFERENCE_INPUT) + 1):
        assert _parse_chunks([REFERENCE_INPUT[:i], REFERENCE_INPUT[i:]]) == expected


def test_character_at_a_time_matches_single_push() -> None:
    text = REFERENCE_INPUT.replace("\n", "\r\n")
    assert _parse_chunks(list(text)) == _parse_chunks([REFERENCE_INPUT])


def test_feed_returns_frames_completed_by_chunk() -> None:
    parser = SseParser()
    assert parser.feed("event: step\ndata: a") == []
    assert parser.pending == "data: a"
    assert parser.feed("\n\n") == [Frame(event="step", data="a")]
    assert parser.pending == ""


def test_comments_never_dispatch_or_contribute() -> None:
    frames = _parse_chunks([": hello\n\n:\n\ndata: x\n: ignored: data: y\n\n"])
    assert frames == [Frame(data="x")]


def test_empty_frame_is_not_dispatched() -> None:
    assert _parse_chunks(["\n\n\n", "retry: 1000\n\n"]) == []


def test_id_and_event_do_not_leak_into_next_frame() -> None:
    frames = _parse_chunks(["id: 7\nevent: step\ndata: a\n\ndata: b\n\n"])
    assert frames == [Frame(id="7", event="step", data="a"), Frame(data="b")]


def test_event_only_frame_is_dispatched_with_empty_data() -> None:
    assert _parse_chunks(["event: ping\n\n"]) == [Frame(event="ping", data="")]


def test_data_lines_join_in_order() -> None:
    frames = _parse_chunks(["data: 1\ndata: 2\ndata: 3\n\n"])
    assert frames[0].data == "1\n2\n3"


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("data:x", Frame(data="x")),
        ("data:   padded  ", Frame(data="padded  ")),
        ("data: a: b", Frame(data="a: b")),
        ("data", Frame(data="")),
    ],
)
def test_field_value_parsing(line: str, expected: Frame) -> None:
    assert _parse_chunks([f"{line}\n\n"]) == [expected]


def test_unknown_fields_are_ignored() -> None:
    frames = _parse_chunks(["retry: 3000\nfoo: bar\ndata: ok\n\n"])
    assert frames == [Frame(data="ok")]


def test_unterminated_tail_waits_for_more_input() -> None:
    parser = SseParser()
    frames: list[Frame] = []
    parser.push("data: partial", frames.append)
    parser.push("\r", frames.append)
    assert frames == []
    parser.push("\n\r\n", frames.append)
    assert frames == [Frame(data="partial")]


def test_blank_id_and_event_alone_are_not_content() -> None:
    assert _parse_chunks(["id\n\nevent:\n\n"]) == []
