"""
Chat service: one question in, one answer (or stream) out.

Picks the tool-selection path (keyword rules or the chat model), the answer
path (chat model or templates), handles multi-entity questions and
feature-request confirmations, and records history.
"""

import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from models import ToolResult, ToolCall, StreamChunk, DONE_CHUNK
from classifier import requires_data, detect_multiple_entities
from tool_dispatcher import classify_intent_and_get_tools
from tool_executor import unsupported_entity_result
from answer_composer import compose_answer
from orchestrator import OrchestrationState, tool_data_metadata, pending_request_entity
from services.stream_relay import relay, single_chunk_stream
from store_registry import AFFIRMATIVE_PATTERNS
from errors import InputError, LLMError
from config.settings import (
    TOOL_SELECTION_MODE, ANSWER_MODE, HISTORY_LIMIT, HISTORY_MAX_AGE_DAYS,
    PENDING_REQUEST_TTL_SECONDS,
)
from chat_logger import get_logger, sanitize_log_string

logger = get_logger("dataviz_chat")

MULTI_ENTITY_REQUEST = "multi-entity-queries"
PENDING_REQUEST_KEY = "pending_feature_request"
PENDING_REQUEST_AT_KEY = "pending_feature_request_at"
GREETING_PATTERN = re.compile(
    r"^\s*(hello|hi|hey)\b[!.,]?\s*(how can i (assist|help) you( today)?\??)?\s*",
    re.IGNORECASE,
)
GREETING_HOLD_CHARS = 48


@dataclass
class ChatReply:
    answer: str
    provider: str
    operations_used: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


def is_feature_request_confirmation(question: str) -> bool:
    text = question.strip().lower()
    return any(re.search(p, text) for p in AFFIRMATIVE_PATTERNS)


def strip_greeting(chunks: Iterator[StreamChunk]) -> Iterator[StreamChunk]:
    """
    Drop a leading "Hello! How can I assist you today?" from a streamed answer.

    Only text that could still become a greeting is held back; anything else
    is forwarded as soon as it arrives.
    """
    held = ""
    holding = True
    for chunk in chunks:
        if holding and chunk.text and not chunk.is_terminal:
            held += chunk.text
            start = held.lstrip().lower()
            if start and not start.startswith("h"):
                holding = False
            elif len(held) >= GREETING_HOLD_CHARS:
                holding = False
                held = GREETING_PATTERN.sub("", held, count=1)
            if not holding and held:
                yield StreamChunk(text=held)
            continue

        if holding and chunk.is_terminal:
            holding = False
            held = GREETING_PATTERN.sub("", held, count=1)
            if held:
                yield StreamChunk(text=held)
        yield chunk

    if holding and held:
        yield StreamChunk(text=held)


class ChatService:
    def __init__(
        self,
        executor,
        history,
        orchestrator=None,
        tool_selection_mode: str = TOOL_SELECTION_MODE,
        answer_mode: str = ANSWER_MODE,
        pending_ttl: int = PENDING_REQUEST_TTL_SECONDS,
    ):
        self.executor = executor
        self.history = history
        self.orchestrator = orchestrator
        self.tool_selection_mode = tool_selection_mode
        self.answer_mode = answer_mode
        self.pending_ttl = pending_ttl
        if orchestrator is None:
            # Without a model only the keyword/template path is possible
            self.answer_mode = "template"
        if self.answer_mode == "template":
            self.tool_selection_mode = "rules"

    @property
    def provider(self) -> str:
        if self.tool_selection_mode == "rules" and self.answer_mode == "template":
            return "rules"
        return getattr(self.orchestrator.llm, "provider", "llm")

    # ─── helpers ───

    @staticmethod
    def _validate(question: Optional[str]) -> str:
        question = (question or "").strip()
        if not question:
            raise InputError("Please enter a question about your store.")
        return question

    def _remember_pending_request(self, session_id: str, results: List[ToolResult]) -> None:
        self._set_pending(session_id, pending_request_entity(results))

    def _set_pending(self, session_id: str, entity_type: Optional[str]) -> None:
        if entity_type:
            state = self.history.get_state(session_id)
            state[PENDING_REQUEST_KEY] = entity_type
            state[PENDING_REQUEST_AT_KEY] = time.time()

    def _clear_pending(self, session_id: str) -> None:
        self.history.clear_state(session_id, PENDING_REQUEST_KEY)
        self.history.clear_state(session_id, PENDING_REQUEST_AT_KEY)

    def _pending_request(self, session_id: str, question: str) -> Optional[str]:
        """
        The entity awaiting confirmation, if this question confirms it.

        Any other question, or an offer older than the TTL, discards it.
        """
        if not session_id:
            return None
        state = self.history.get_state(session_id)
        entity_type = state.get(PENDING_REQUEST_KEY)
        if not entity_type:
            return None

        age = time.time() - state.get(PENDING_REQUEST_AT_KEY, 0)
        if age > self.pending_ttl or not is_feature_request_confirmation(question):
            logger.info(
                f"Step 1: Pending feature request discarded | entity_type={entity_type} | "
                f"age_s={int(age)}"
            )
            self._clear_pending(session_id)
            return None
        return entity_type

    def _submit_pending(self, session_id: str, entity_type: str, user_id: str) -> ToolResult:
        self._clear_pending(session_id)
        return self.executor.execute(
            "submit_feature_request", {"entity_type": entity_type}, user_id=user_id,
        )

    def _multi_entity_result(self, question: str) -> Optional[ToolResult]:
        entities = detect_multiple_entities(question)
        if not entities:
            return None
        logger.info(f"Step 1: Multi-entity question | entities={[e.value for e in entities]}")
        result = unsupported_entity_result("get_woocommerce_data", MULTI_ENTITY_REQUEST)
        result.payload["message"] = (
            "Questions that combine several data types ("
            + ", ".join(e.value for e in entities)
            + ") in one request are not supported yet. Please ask about one type at a time."
        )
        result.payload["detected_entities"] = [e.value for e in entities]
        return result

    def _recent_history(self, session_id: str) -> List[Dict]:
        if not session_id:
            return []
        return self.history.recent(session_id, HISTORY_LIMIT, HISTORY_MAX_AGE_DAYS)

    def _shortcut(self, question: str, session_id: str, user_id: str) -> Optional[List[ToolResult]]:
        """Results for questions answered without normal tool selection."""
        pending = self._pending_request(session_id, question)
        if pending:
            logger.info(f"Step 1: Feature request confirmed | entity_type={pending}")
            return [self._submit_pending(session_id, pending, user_id)]

        multi = self._multi_entity_result(question)
        if multi:
            return [multi]
        return None

    # ─── non-streaming ───

    def ask(self, question: str, session_id: str = "", user_id: str = "") -> ChatReply:
        question = self._validate(question)
        session_id = session_id or f"session_{uuid.uuid4().hex[:12]}"
        logger.info(
            f"Step 0: Question received | session={session_id} | "
            f"mode={self.tool_selection_mode}/{self.answer_mode} | "
            f"message=\"{sanitize_log_string(question[:100])}\""
        )
        prior_history = self._recent_history(session_id)
        self.history.append("user", question, session_id)

        shortcut = self._shortcut(question, session_id, user_id)
        if shortcut is not None:
            self._remember_pending_request(session_id, shortcut)
            reply = ChatReply(
                answer=compose_answer(shortcut),
                provider=self.provider,
                operations_used=[r.tool_name for r in shortcut],
            )
        elif self.tool_selection_mode == "rules":
            reply = self._ask_with_rules(question, session_id, user_id)
        else:
            outcome = self.orchestrator.run(question, user_id=user_id, history=prior_history)
            reply = self._reply_from_outcome(outcome, session_id)

        reply.metadata["session_id"] = session_id
        self.history.append(
            "ai", reply.answer, session_id,
            {"provider": reply.provider, "operations_used": reply.operations_used},
        )
        return reply

    def _ask_with_rules(self, question: str, session_id: str, user_id: str) -> ChatReply:
        calls = classify_intent_and_get_tools(question)
        if self.answer_mode == "template":
            results = [self.executor.execute(c.name, c.arguments, user_id=user_id) for c in calls]
            self._remember_pending_request(session_id, results)
            return ChatReply(
                answer=compose_answer(results),
                provider=self.provider,
                operations_used=[c.name for c in calls],
                metadata=tool_data_metadata(results) or {},
            )
        outcome = self.orchestrator.answer_with_tool_calls(question, calls, user_id=user_id)
        return self._reply_from_outcome(outcome, session_id)

    def _reply_from_outcome(self, outcome, session_id: str) -> ChatReply:
        if outcome.state == OrchestrationState.FAILED:
            raise LLMError(outcome.error or "The AI model did not return an answer.")
        self._remember_pending_request(session_id, outcome.tool_results)
        return ChatReply(
            answer=outcome.answer,
            provider=self.provider,
            operations_used=outcome.operations_used,
            metadata=tool_data_metadata(outcome.tool_results) or {},
        )

    # ─── streaming ───

    def stream(self, question: str, session_id: str = "", user_id: str = "") -> Iterator[StreamChunk]:
        """
        Answer as a chunk stream that always ends with one DONE chunk.

        Input errors are raised before streaming starts; later failures
        arrive as an error chunk.
        """
        question = self._validate(question)
        session_id = session_id or f"session_{uuid.uuid4().hex[:12]}"
        return self._recorded(question, session_id, user_id)

    def _recorded(self, question: str, session_id: str, user_id: str) -> Iterator[StreamChunk]:
        prior_history = self._recent_history(session_id)
        self.history.append("user", question, session_id)
        logger.info(
            f"Step 0: Streaming question | session={session_id} | "
            f"message=\"{sanitize_log_string(question[:100])}\""
        )

        answer_parts: List[str] = []
        operations: List[str] = []
        failed = False
        for chunk in relay(self._chunks(question, session_id, user_id, prior_history)):
            if chunk.metadata and "operations_used" in chunk.metadata:
                operations = chunk.metadata["operations_used"]
                self._set_pending(session_id, chunk.metadata.get("requested_entity"))
            if chunk.error is not None:
                failed = True
            if chunk.text:
                answer_parts.append(chunk.text)
            if chunk.done:
                break
            if chunk.text or chunk.error is not None or chunk.metadata:
                yield chunk

        if answer_parts and not failed:
            self.history.append(
                "ai", "".join(answer_parts), session_id,
                {"provider": self.provider, "operations_used": operations, "streaming": True},
            )
        yield DONE_CHUNK

    def _chunks(
        self, question: str, session_id: str, user_id: str, prior_history: List[Dict],
    ) -> Iterator[StreamChunk]:
        shortcut = self._shortcut(question, session_id, user_id)
        if shortcut is not None:
            self._remember_pending_request(session_id, shortcut)
            yield StreamChunk(metadata={"operations_used": [r.tool_name for r in shortcut]})
            yield from single_chunk_stream(compose_answer(shortcut))
            return

        calls: Optional[List[ToolCall]] = None
        if self.tool_selection_mode == "rules":
            calls = classify_intent_and_get_tools(question)

        if self.answer_mode == "template":
            results = [self.executor.execute(c.name, c.arguments, user_id=user_id) for c in calls]
            self._remember_pending_request(session_id, results)
            metadata = {"operations_used": [c.name for c in calls]}
            metadata.update(tool_data_metadata(results) or {})
            yield StreamChunk(metadata=metadata)
            yield from single_chunk_stream(compose_answer(results))
            return

        chunks = self.orchestrator.stream(
            question, tool_calls=calls, user_id=user_id,
            history=prior_history if calls is None else None,
        )
        if requires_data(question):
            chunks = strip_greeting(chunks)
        yield from chunks
