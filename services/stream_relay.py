"""
Server-sent-event streaming between the chat model and the browser.

Wire format sent to clients:
    data: {"chunk": "..."}\n\n       answer text, in generation order
    data: {"error": "..."}\n\n       terminal error
    data: [DONE]\n\n                 end of stream (always last)
"""

import codecs
import json
from typing import Iterable, Iterator, List, Optional
from models import StreamChunk, DONE_CHUNK
from chat_logger import get_logger

logger = get_logger("dataviz_chat")

DONE_MARKER = "[DONE]"


def _event_data(raw_event: str) -> Optional[str]:
    """Joined `data:` field of one SSE event, or None for comment/empty events."""
    lines = []
    for line in raw_event.split("\n"):
        if line.startswith("data:"):
            value = line[5:]
            lines.append(value[1:] if value.startswith(" ") else value)
    return "\n".join(lines) if lines else None


class SSEParser:
    """
    Incremental SSE parser.

    Bytes are fed as they arrive; complete events (terminated by a blank
    line) are returned and any partial tail is kept for the next feed.
    UTF-8 decoding is incremental, so a multi-byte character split across
    two network reads is reassembled, never replaced.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""

    def feed(self, data: bytes) -> List[str]:
        self._buffer += self._decoder.decode(data)
        self._buffer = self._buffer.replace("\r\n", "\n")
        events = []
        while "\n\n" in self._buffer:
            raw_event, self._buffer = self._buffer.split("\n\n", 1)
            payload = _event_data(raw_event)
            if payload is not None:
                events.append(payload)
        return events

    def flush(self) -> List[str]:
        """Emit a trailing event that arrived without its blank line."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer.strip("\n"), ""
        payload = _event_data(rest) if rest else None
        return [payload] if payload is not None else []


def iter_openai_stream(byte_chunks: Iterable[bytes]) -> Iterator[StreamChunk]:
    """
    Lazily turn an OpenAI chat-completions SSE byte stream into StreamChunks.

    Ends with exactly one terminal chunk: DONE on `[DONE]` or EOF, or an
    error chunk if the upstream sends an error event.
    """
    parser = SSEParser()

    def _handle(payload: str):
        if payload.strip() == DONE_MARKER:
            return DONE_CHUNK
        try:
            event = json.loads(payload)
        except ValueError:
            logger.warning(f"Skipping malformed stream event | payload={payload[:200]}")
            return None
        if isinstance(event, dict) and event.get("error"):
            error = event["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            return StreamChunk(error=message or "Upstream stream error")
        choices = event.get("choices") or []
        delta = (choices[0].get("delta") or {}) if choices else {}
        content = delta.get("content")
        return StreamChunk(text=content) if content else None

    for data in byte_chunks:
        if not data:
            continue
        for payload in parser.feed(data):
            chunk = _handle(payload)
            if chunk is None:
                continue
            yield chunk
            if chunk.is_terminal:
                return

    for payload in parser.flush():
        chunk = _handle(payload)
        if chunk is not None:
            yield chunk
            if chunk.is_terminal:
                return
    yield DONE_CHUNK


def iter_relay_stream(byte_chunks: Iterable[bytes]) -> Iterator[StreamChunk]:
    """Client-side reader for the relay's own wire format."""
    parser = SSEParser()
    pending = []
    for data in byte_chunks:
        pending.extend(parser.feed(data))
        while pending:
            payload = pending.pop(0)
            if payload.strip() == DONE_MARKER:
                yield DONE_CHUNK
                return
            event = json.loads(payload)
            if "error" in event:
                yield StreamChunk(error=event["error"])
                continue
            metadata = {k: v for k, v in event.items() if k != "chunk"} or None
            yield StreamChunk(text=event.get("chunk", ""), metadata=metadata)
    for payload in parser.flush():
        if payload.strip() == DONE_MARKER:
            yield DONE_CHUNK
            return


def single_chunk_stream(text: str, metadata: Optional[dict] = None) -> Iterator[StreamChunk]:
    """Stream for a non-streaming upstream: the whole answer, then DONE."""
    yield StreamChunk(text=text, metadata=metadata)
    yield DONE_CHUNK


def relay(chunks: Iterable[StreamChunk]) -> Iterator[StreamChunk]:
    """
    Forward chunks in arrival order and guarantee one terminal DONE.

    An error chunk (or an exception from the upstream) is forwarded and ends
    the stream, followed by DONE. Nothing is buffered or reordered.
    """
    try:
        for chunk in chunks:
            if chunk.done:
                break
            yield chunk
            if chunk.error is not None:
                break
    except Exception as e:
        logger.error(f"Stream relay aborted | error={str(e)}")
        detail = e.to_dict() if hasattr(e, "to_dict") else {"error_type": type(e).__name__}
        yield StreamChunk(error=str(e) or "Streaming failed", metadata=detail)
    yield DONE_CHUNK


def format_sse(chunk: StreamChunk) -> str:
    if chunk.error is not None:
        payload = {"error": chunk.error}
        if chunk.metadata:
            payload["detail"] = chunk.metadata
        return f"data: {json.dumps(payload)}\n\n"
    if chunk.done:
        return f"data: {DONE_MARKER}\n\n"
    payload = {"chunk": chunk.text}
    if chunk.metadata:
        payload.update(chunk.metadata)
    return f"data: {json.dumps(payload)}\n\n"
