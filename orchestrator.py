"""
LLM Orchestrator: tool-calling loop for one question.

States:
    AWAITING_TOOL_DECISION -> TOOLS_REQUESTED -> AWAITING_FINAL_ANSWER -> ANSWERED
    AWAITING_TOOL_DECISION -> DIRECT_ANSWERED   (content, no tool calls)
    any                    -> FAILED            (no content and no tool calls)

Transport / auth failures from the client are not caught here; they
propagate to the caller as LLMError / ConfigurationError.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple
from models import (
    ToolCall, ToolResult, ConversationTurn, Conversation, Role, StreamChunk,
)
from tool_registry import to_openai_tools, decode_arguments
from services.stream_relay import single_chunk_stream
from chat_logger import get_logger, sanitize_log_string

logger = get_logger("dataviz_chat")


SYSTEM_PROMPT = (
    "You are a WooCommerce data analyst AI assistant. Answer the user's question directly "
    "and concisely; do not greet them or ask how you can assist. "
    "When the question is about store data (orders, products, customers, sales, revenue, "
    "categories, tags, coupons, refunds, stock, inventory or any other data type), you MUST "
    "call the available tools to fetch it, using the exact entity_type the user mentioned even "
    "if it may be unsupported. Never claim you lack access. "
    "If a tool result contains \"error\": true, tell the user the feature is not available yet "
    "and suggest the alternatives it lists. If it includes \"can_submit_request\": true, ask "
    "whether they want to submit a feature request using its submission_prompt. If the user "
    "then says yes, call submit_feature_request with the requested_entity from that error."
)

UNEXPECTED_RESPONSE = "Unexpected response format from AI."


def build_final_prompt(question: str) -> str:
    return (
        f"Based on the data you just fetched, please answer the original question: {question}\n\n"
        "IMPORTANT: If any tool returned an error (\"error\": true), politely inform the user that "
        "the requested feature is not yet available, using the error message and suggestions. "
        "If a tool result has \"no_records_found\": true or an empty list, state explicitly that "
        "there are 0 (zero) records matching their query in the store; do not guess or "
        "describe data that was not returned. "
        "List only the records that were returned, no more and no fewer."
    )


class OrchestrationState(Enum):
    AWAITING_TOOL_DECISION = "awaiting_tool_decision"
    TOOLS_REQUESTED        = "tools_requested"
    AWAITING_FINAL_ANSWER  = "awaiting_final_answer"
    ANSWERED               = "answered"
    DIRECT_ANSWERED        = "direct_answered"
    FAILED                 = "failed"


@dataclass
class OrchestrationResult:
    state: OrchestrationState
    answer: Optional[str] = None
    operations_used: List[str] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state in (OrchestrationState.ANSWERED, OrchestrationState.DIRECT_ANSWERED)


def parse_tool_calls(message: Dict[str, Any]) -> List[ToolCall]:
    """Tool calls from an assistant message; bad argument JSON becomes {}."""
    calls = []
    for index, raw in enumerate(message.get("tool_calls") or []):
        function = raw.get("function") or {}
        calls.append(ToolCall(
            id=raw.get("id") or f"call-{index}",
            name=function.get("name", ""),
            arguments=decode_arguments(function.get("arguments")),
        ))
    return calls


def pending_request_entity(results: List[ToolResult]) -> Optional[str]:
    """Entity of the last result that offers a feature request."""
    pending = None
    for result in results:
        if result.payload.get("can_submit_request"):
            pending = result.payload.get("requested_entity")
    return pending


def tool_data_metadata(results: List[ToolResult]) -> Optional[Dict[str, Any]]:
    """Chartable payloads the client renders alongside the answer."""
    for result in results:
        payload = result.payload
        if result.success and "total" in payload and isinstance(payload.get("products"), list):
            return {"tool_data": {"inventory": payload["products"]}}
    return None


class LLMOrchestrator:
    def __init__(self, llm_client, executor, streaming: bool = True):
        self.llm = llm_client
        self.executor = executor
        self.streaming = streaming

    # ─── conversation building ───

    def _start(self, question: str, history: Optional[List[Dict]] = None) -> Conversation:
        conversation = Conversation([ConversationTurn(Role.SYSTEM, SYSTEM_PROMPT)])
        for past in history or []:
            role = Role.USER if past.get("role") == "user" else Role.ASSISTANT
            conversation.append(ConversationTurn(role, past.get("content", "")))
        conversation.append(ConversationTurn(Role.USER, question))
        return conversation

    def _run_tools(
        self, conversation: Conversation, calls: List[ToolCall], user_id: str,
    ) -> List[ToolResult]:
        """Execute calls in order; each result becomes a tool turn keyed by call id."""
        conversation.append(ConversationTurn(Role.ASSISTANT, None, tool_calls=tuple(calls)))
        results = []
        for call in calls:
            result = self.executor.execute(call.name, call.arguments, user_id=user_id)
            results.append(result)
            conversation.append(ConversationTurn(
                Role.TOOL,
                result.to_message_content(),
                tool_call_id=call.id,
                name=call.name,
            ))
        return results

    def _decide(self, conversation: Conversation) -> Tuple[List[ToolCall], Optional[str]]:
        message = self.llm.chat(conversation.messages(), tools=to_openai_tools(), tool_choice="auto")
        calls = parse_tool_calls(message)
        logger.info(
            f"Step 2: Model tool decision | tool_calls={[c.name for c in calls]} | "
            f"has_content={bool(message.get('content'))}"
        )
        return calls, message.get("content")

    # ─── entry points ───

    def run(self, question: str, user_id: str = "", history: Optional[List[Dict]] = None) -> OrchestrationResult:
        """Let the model choose tools, then answer from their results."""
        conversation = self._start(question, history)
        logger.info(f"Step 2: Orchestration started | question=\"{sanitize_log_string(question[:100])}\"")

        calls, content = self._decide(conversation)
        if not calls:
            if content:
                return OrchestrationResult(OrchestrationState.DIRECT_ANSWERED, answer=content)
            return OrchestrationResult(OrchestrationState.FAILED, error=UNEXPECTED_RESPONSE)

        return self._answer(question, conversation, calls, user_id)

    def answer_with_tool_calls(
        self, question: str, tool_calls: List[ToolCall], user_id: str = "",
    ) -> OrchestrationResult:
        """Answer using tool calls chosen up front (rule-based path)."""
        conversation = self._start(question)
        if not tool_calls:
            message = self.llm.chat(conversation.messages())
            if message.get("content"):
                return OrchestrationResult(OrchestrationState.DIRECT_ANSWERED, answer=message["content"])
            return OrchestrationResult(OrchestrationState.FAILED, error=UNEXPECTED_RESPONSE)
        return self._answer(question, conversation, tool_calls, user_id)

    def _answer(
        self, question: str, conversation: Conversation, calls: List[ToolCall], user_id: str,
    ) -> OrchestrationResult:
        results = self._run_tools(conversation, calls, user_id)
        operations = [c.name for c in calls]

        conversation.append(ConversationTurn(Role.USER, build_final_prompt(question)))
        message = self.llm.chat(conversation.messages())
        answer = message.get("content")
        if not answer:
            return OrchestrationResult(
                OrchestrationState.FAILED, operations_used=operations,
                tool_results=results, error=UNEXPECTED_RESPONSE,
            )

        logger.info(f"Step 4: Final answer | operations={operations} | chars={len(answer)}")
        return OrchestrationResult(
            OrchestrationState.ANSWERED, answer=answer,
            operations_used=operations, tool_results=results,
        )

    def stream(
        self,
        question: str,
        tool_calls: Optional[List[ToolCall]] = None,
        user_id: str = "",
        history: Optional[List[Dict]] = None,
    ) -> Iterator[StreamChunk]:
        """
        Streaming variant. Yields an optional metadata chunk (operations,
        tool_data) followed by the answer chunks and a terminal chunk.
        """
        conversation = self._start(question, history)

        if tool_calls is None:
            calls, content = self._decide(conversation)
            if not calls:
                if content:
                    yield from single_chunk_stream(content)
                else:
                    yield StreamChunk(error=UNEXPECTED_RESPONSE)
                return
        else:
            calls = tool_calls

        metadata: Dict[str, Any] = {}
        if calls:
            results = self._run_tools(conversation, calls, user_id)
            metadata["operations_used"] = [c.name for c in calls]
            metadata.update(tool_data_metadata(results) or {})
            if pending_request_entity(results):
                metadata["requested_entity"] = pending_request_entity(results)
            conversation.append(ConversationTurn(Role.USER, build_final_prompt(question)))
        yield StreamChunk(metadata=metadata)

        if self.streaming:
            yield from self.llm.chat_stream(conversation.messages())
            return

        message = self.llm.chat(conversation.messages())
        if message.get("content"):
            yield from single_chunk_stream(message["content"])
        else:
            yield StreamChunk(error=UNEXPECTED_RESPONSE)
