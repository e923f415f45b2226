from __future__ import annotations

import json

from hypothesis import given, settings
from hypothesis import strategies as st

from texteditor.lsp.json_rpc import (
    LspMessageParser,
    ReadBuffer,
    encode_lsp_message,
    make_notification,
    make_request,
)


def test_encode_uses_byte_length_of_compact_utf8_body():
    frame = encode_lsp_message({"jsonrpc": "2.0", "method": "x", "params": {"text": "é"}})
    header, body = frame.split(b"\r\n\r\n", 1)
    assert header == f"Content-Length: {len(body)}".encode("ascii")
    assert b" " not in body
    assert "é".encode("utf-8") in body


def test_request_and_notification_shapes():
    assert make_request(7, "textDocument/hover", {"a": 1}) == {
        "jsonrpc": "2.0",
        "id": 7,
        "method": "textDocument/hover",
        "params": {"a": 1},
    }
    assert make_notification("exit") == {"jsonrpc": "2.0", "method": "exit"}


def test_read_buffer_find_and_consume():
    buf = ReadBuffer()
    buf.append(b"hello world")
    assert buf.find(b"world") == 6
    assert buf.consume(6) == b"hello "
    assert len(buf) == 5
    assert buf.consume(100) == b"world"
    assert len(buf) == 0


def test_parser_handles_two_frames_in_one_chunk():
    parser = LspMessageParser()
    data = encode_lsp_message({"id": 1}) + encode_lsp_message({"id": 2})
    assert parser.feed(data) == [{"id": 1}, {"id": 2}]
    assert parser.buffered == 0


def test_parser_waits_for_incomplete_body():
    parser = LspMessageParser()
    frame = encode_lsp_message({"jsonrpc": "2.0", "id": 3, "result": None})
    assert parser.feed(frame[:-3]) == []
    assert parser.feed(frame[-3:]) == [{"jsonrpc": "2.0", "id": 3, "result": None}]


def test_header_is_case_insensitive_and_tolerates_extra_fields():
    parser = LspMessageParser()
    body = b'{"id":4}'
    data = b"content-length: %d\r\nContent-Type: application/vscode-jsonrpc\r\n\r\n" % len(body) + body
    assert parser.feed(data) == [{"id": 4}]


def test_header_without_length_is_dropped_and_parsing_continues():
    parser = LspMessageParser()
    data = b"X-Nothing: 1\r\n\r\n" + encode_lsp_message({"id": 5})
    assert parser.feed(data) == [{"id": 5}]


def test_unparseable_length_recovers_on_next_frame():
    parser = LspMessageParser()
    bad = b'Content-Length: abc\r\n\r\n{"jsonrpc":"2.0","id":99}'
    data = bad + encode_lsp_message({"id": 1}) + encode_lsp_message({"id": 2})
    assert parser.feed(data) == [{"id": 1}, {"id": 2}]
    assert parser.feed(encode_lsp_message({"id": 3})) == [{"id": 3}]
    assert parser.buffered == 0


def test_stray_output_before_header_is_skipped():
    parser = LspMessageParser()
    assert parser.feed(b"server banner\n" + encode_lsp_message({"id": 1})) == [{"id": 1}]
    data = encode_lsp_message({"id": 2}) + encode_lsp_message({"id": 3})
    assert parser.feed(data) == [{"id": 2}, {"id": 3}]


def test_negative_length_is_dropped():
    parser = LspMessageParser()
    assert parser.feed(b"Content-Length: -4\r\n\r\n" + encode_lsp_message({"id": 4})) == [{"id": 4}]


def test_invalid_json_body_is_dropped():
    parser = LspMessageParser()
    bad = b"Content-Length: 5\r\n\r\n{oops"
    assert parser.feed(bad + encode_lsp_message({"id": 6})) == [{"id": 6}]


def test_non_object_body_is_dropped():
    parser = LspMessageParser()
    assert parser.feed(encode_lsp_message([1, 2]) + encode_lsp_message({"id": 7})) == [{"id": 7}]  # type: ignore[arg-type]


_text = st.text(alphabet=st.characters(blacklist_categories=("Cs",)), max_size=20)
_json_scalars = st.none() | st.booleans() | st.integers(-(2**31), 2**31) | _text
_json_values = st.recursive(
    _json_scalars,
    lambda children: st.lists(children, max_size=4) | st.dictionaries(_text, children, max_size=4),
    max_leaves=12,
)
_messages = st.dictionaries(_text.filter(bool), _json_values, min_size=1, max_size=5)


@settings(max_examples=75, deadline=None)
@given(messages=st.lists(_messages, min_size=1, max_size=5), data=st.data())
def test_messages_survive_arbitrary_chunking(messages, data):
    stream = b"".join(encode_lsp_message(msg) for msg in messages)
    cuts = sorted(data.draw(st.lists(st.integers(0, len(stream)), max_size=12)))

    parser = LspMessageParser()
    out = []
    start = 0
    for cut in cuts + [len(stream)]:
        out.extend(parser.feed(stream[start:cut]))
        start = cut

    assert out == [json.loads(json.dumps(msg)) for msg in messages]
    assert parser.buffered == 0
