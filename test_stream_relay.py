"""
Tests for SSE parsing and the streaming relay.
"""

import json
from models import StreamChunk, DONE_CHUNK
from errors import LLMError
from services.stream_relay import (
    SSEParser,
    iter_openai_stream,
    iter_relay_stream,
    single_chunk_stream,
    relay,
    format_sse,
)


def _openai_event(text):
    payload = json.dumps({"choices": [{"delta": {"content": text}}]}, ensure_ascii=False)
    return f"data: {payload}\n\n".encode("utf-8")


class TestSSEParser:
    def test_event_split_across_feeds(self):
        parser = SSEParser()
        assert parser.feed(b'data: {"a"') == []
        assert parser.feed(b": 1}\n\ndata: [DO") == ['{"a": 1}']
        assert parser.feed(b"NE]\n\n") == ["[DONE]"]

    def test_crlf_boundaries(self):
        assert SSEParser().feed(b"data: x\r\n\r\ndata: y\r\n\r\n") == ["x", "y"]

    def test_comments_are_skipped(self):
        assert SSEParser().feed(b": keep-alive\n\ndata: x\n\n") == ["x"]

    def test_flush_returns_unterminated_event(self):
        parser = SSEParser()
        parser.feed(b"data: tail")
        assert parser.flush() == ["tail"]


class TestOpenAIStream:
    def test_three_chunks_then_done(self):
        """A multi-byte character split between reads arrives intact."""
        raw = _openai_event("Héllo") + _openai_event(" wörld") + _openai_event(" ✓") + b"data: [DONE]\n\n"
        split_at = raw.index("é".encode("utf-8")) + 1
        pieces = [raw[:split_at], raw[split_at:split_at + 7], raw[split_at + 7:]]

        chunks = list(relay(iter_openai_stream(pieces)))
        assert [c.text for c in chunks[:-1]] == ["Héllo", " wörld", " ✓"]
        assert chunks[-1] == DONE_CHUNK

    def test_byte_at_a_time(self):
        raw = _openai_event("añb") + _openai_event("c") + b"data: [DONE]\n\n"
        chunks = list(iter_openai_stream(raw[i:i + 1] for i in range(len(raw))))
        assert [c.text for c in chunks] == ["añb", "c", ""]
        assert chunks[-1].done

    def test_eof_without_done_marker(self):
        chunks = list(iter_openai_stream([_openai_event("hi")]))
        assert chunks == [StreamChunk(text="hi"), DONE_CHUNK]

    def test_error_event_is_terminal(self):
        raw = _openai_event("partial") + b'data: {"error": {"message": "rate limited"}}\n\n' + _openai_event("x")
        chunks = list(iter_openai_stream([raw]))
        assert chunks[-1].error == "rate limited"
        assert [c.text for c in chunks if c.text] == ["partial"]

    def test_role_only_deltas_skipped(self):
        raw = b'data: {"choices": [{"delta": {"role": "assistant"}}]}\n\n' + _openai_event("a")
        assert [c.text for c in iter_openai_stream([raw])] == ["a", ""]


class TestRelay:
    def test_exactly_one_done(self):
        chunks = list(relay([StreamChunk(text="a"), DONE_CHUNK, StreamChunk(text="late")]))
        assert chunks == [StreamChunk(text="a"), DONE_CHUNK]

    def test_adds_done_when_missing(self):
        assert list(relay(iter([StreamChunk(text="a")]))) == [StreamChunk(text="a"), DONE_CHUNK]

    def test_error_chunk_then_done(self):
        chunks = list(relay([StreamChunk(text="a"), StreamChunk(error="boom"), StreamChunk(text="b")]))
        assert [c.error for c in chunks] == [None, "boom", None]
        assert chunks[-1] == DONE_CHUNK

    def test_exception_becomes_error_chunk(self):
        def failing():
            yield StreamChunk(text="a")
            raise LLMError("Chat model returned HTTP 500", status_code=500, body="oops")

        chunks = list(relay(failing()))
        assert chunks[1].error == "Chat model returned HTTP 500"
        assert chunks[1].metadata["status"] == 500
        assert chunks[-1] == DONE_CHUNK
        assert len(chunks) == 3

    def test_single_chunk_stream(self):
        assert list(single_chunk_stream("all")) == [StreamChunk(text="all"), DONE_CHUNK]


class TestWireFormat:
    def test_text_chunk(self):
        assert format_sse(StreamChunk(text="hi")) == 'data: {"chunk": "hi"}\n\n'

    def test_metadata_merged(self):
        line = format_sse(StreamChunk(metadata={"operations_used": ["get_top_products"]}))
        assert json.loads(line[len("data: "):]) == {"chunk": "", "operations_used": ["get_top_products"]}

    def test_error(self):
        assert format_sse(StreamChunk(error="nope")) == 'data: {"error": "nope"}\n\n'

    def test_done(self):
        assert format_sse(DONE_CHUNK) == "data: [DONE]\n\n"

    def test_client_reader_round_trip(self):
        wire = "".join(format_sse(c) for c in [StreamChunk(text="a"), StreamChunk(text="ü"), DONE_CHUNK])
        data = wire.encode("utf-8")
        chunks = list(iter_relay_stream([data[:5], data[5:]]))
        assert [c.text for c in chunks] == ["a", "ü", ""]
        assert chunks[-1].done
