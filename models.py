"""
Data models for the WooCommerce store-data chat assistant.
"""

import json
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


# Reserved filter value meaning "fetch every matching record".
UNBOUNDED_LIMIT = -1


class EntityType(Enum):
    ORDERS      = "orders"
    PRODUCTS    = "products"
    CUSTOMERS   = "customers"
    CATEGORIES  = "categories"
    TAGS        = "tags"
    COUPONS     = "coupons"
    REFUNDS     = "refunds"
    STOCK       = "stock"
    INVENTORY   = "inventory"
    OTHER       = "other"


class QueryType(Enum):
    LIST        = "list"
    STATISTICS  = "statistics"
    SAMPLE      = "sample"
    BY_PERIOD   = "by_period"


class Role(Enum):
    SYSTEM      = "system"
    USER        = "user"
    ASSISTANT   = "assistant"
    TOOL        = "tool"


# ──── Tool catalog ────

@dataclass(frozen=True)
class ToolParameter:
    name: str
    type: str                                   # "string" | "integer" | "object"
    description: str = ""
    enum: Optional[tuple] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    default: Any = None
    required: bool = False
    properties: tuple = ()                      # nested ToolParameters for "object"

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.default is not None:
            schema["default"] = self.default
        if self.type == "object":
            # Always a mapping, even when empty
            schema["properties"] = {p.name: p.to_schema() for p in self.properties}
        return schema


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    parameters: tuple = ()

    def to_openai_tool(self) -> Dict[str, Any]:
        """Render as an entry of the chat-completions `tools` array."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {p.name: p.to_schema() for p in self.parameters},
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }


# ──── Tool calls & results ────

@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    @property
    def arguments_json(self) -> str:
        return json.dumps(self.arguments)

    def to_openai(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments_json},
        }


@dataclass
class ToolResult:
    tool_name: str
    success: bool
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None                 # error_type for failed results

    @property
    def is_empty(self) -> bool:
        return bool(self.payload.get("no_records_found"))

    def to_message_content(self) -> str:
        """JSON body of the `tool` turn the model reads."""
        return json.dumps(self.payload, default=str)


# ──── Conversation ────

@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: Optional[str] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    tool_calls: tuple = ()

    def to_message(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.role == Role.TOOL:
            message["tool_call_id"] = self.tool_call_id
            message["name"] = self.name
        return message


class Conversation:
    """Append-only sequence of turns for one exchange."""

    def __init__(self, turns: Optional[List[ConversationTurn]] = None):
        self._turns: List[ConversationTurn] = list(turns or [])

    def append(self, turn: ConversationTurn) -> None:
        self._turns.append(turn)

    @property
    def turns(self) -> tuple:
        return tuple(self._turns)

    def messages(self) -> List[Dict[str, Any]]:
        return [turn.to_message() for turn in self._turns]

    def __len__(self) -> int:
        return len(self._turns)


# ──── Streaming ────

@dataclass(frozen=True)
class StreamChunk:
    text: str = ""
    done: bool = False
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def is_terminal(self) -> bool:
        return self.done or self.error is not None


DONE_CHUNK = StreamChunk(done=True)
