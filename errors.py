"""Custom exceptions for the chat assistant."""

from typing import Optional, Any


class ChatError(Exception):
    """Base class for errors surfaced to the chat caller."""

    error_type = "chat_error"

    def to_dict(self) -> dict:
        return {"error_type": self.error_type, "message": str(self)}


class InputError(ChatError):
    """Raised when the question is empty or missing."""

    error_type = "invalid_input"


class ConfigurationError(ChatError):
    """Raised when no backend credentials are configured."""

    error_type = "configuration"


class UpstreamError(ChatError):
    """Remote service answered with an error status or was unreachable."""

    error_type = "upstream"

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["status"] = self.status_code
        data["body"] = self.body
        return data


class LLMError(UpstreamError):
    """Raised when the chat-completion API fails or replies in an unexpected format."""

    error_type = "llm_error"


class DataAccessError(UpstreamError):
    """Raised when the WooCommerce REST API fails."""

    error_type = "data_access_error"


class UnknownToolError(ChatError):
    """Raised when a tool name is not in the catalog."""

    error_type = "unknown_tool"

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name
