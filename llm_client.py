"""
Chat-completion client for OpenAI-compatible providers.

Supports tool calling (`tools` + `tool_choice`) and SSE streaming.
Providers:
- openai: OpenAI API
- azure_openai: Azure OpenAI Service (LLM_API_BASE_URL required)
- copilot: GitHub Copilot API
"""

import time
import requests
from typing import Dict, List, Optional, Any, Iterator
from models import StreamChunk
from errors import LLMError, ConfigurationError
from services.stream_relay import iter_openai_stream
from chat_logger import get_logger, mask_secrets
from config.settings import (
    LLM_PROVIDER,
    LLM_MODEL,
    LLM_API_KEY,
    LLM_API_BASE_URL,
    COPILOT_API_TOKEN,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TIMEOUT_SECONDS,
    LLM_COST_PER_1K_INPUT,
    LLM_COST_PER_1K_OUTPUT,
)

logger = get_logger("dataviz_chat")

DEFAULT_URLS = {
    "openai": "https://api.openai.com/v1/chat/completions",
    "copilot": "https://api.githubcopilot.com/chat/completions",
    "azure_openai": "",
}


class LLMClient:
    """Thin wrapper over an OpenAI-style /chat/completions endpoint."""

    def __init__(
        self,
        provider: str = LLM_PROVIDER,
        model: str = LLM_MODEL,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: int = LLM_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.provider = provider.lower()
        if self.provider not in DEFAULT_URLS:
            raise ValueError(f"Unsupported LLM provider: {self.provider}")

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = session or requests.Session()

        if api_key is None:
            api_key = COPILOT_API_TOKEN if self.provider == "copilot" else LLM_API_KEY
        self.api_key = api_key
        self.api_url = api_url or LLM_API_BASE_URL or DEFAULT_URLS[self.provider]

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_url)

    def _check_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError(
                "Add an OpenAI-compatible API key (LLM_API_KEY) to enable AI answers."
            )
        if not self.api_url:
            raise ConfigurationError(
                f"LLM_API_BASE_URL must be set for provider {self.provider}."
            )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.provider == "azure_openai":
            headers["api-key"] = self.api_key
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _payload(self, messages: List[Dict], **extra) -> Dict[str, Any]:
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        payload.update({k: v for k, v in extra.items() if v is not None})
        return payload

    def _post(self, payload: Dict[str, Any], stream: bool = False) -> requests.Response:
        self._check_configured()
        try:
            response = self.session.post(
                self.api_url,
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
                stream=stream,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"LLM API call failed | provider={self.provider} | error={str(e)}")
            raise LLMError(f"Chat model unreachable: {e}") from e

        if response.status_code >= 400:
            body = response.text[:2000]
            logger.error(
                f"LLM API error | provider={self.provider} | status={response.status_code} | "
                f"body={mask_secrets(body[:300])}"
            )
            raise LLMError(
                f"Chat model returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return response

    def chat(
        self,
        messages: List[Dict],
        tools: Optional[List[Dict]] = None,
        tool_choice: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        One non-streaming completion.

        Returns the assistant message dict ({"role", "content", "tool_calls"?}).
        """
        start_time = time.time()
        payload = self._payload(messages, tools=tools or None, tool_choice=tool_choice if tools else None)
        response = self._post(payload)

        try:
            data = response.json()
            message = data["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(
                "Unexpected response format from AI.",
                status_code=response.status_code,
                body=response.text[:2000],
            ) from e

        usage = data.get("usage") or {}
        input_tokens = usage.get("prompt_tokens", 0)
        output_tokens = usage.get("completion_tokens", 0)
        cost = (input_tokens / 1000) * LLM_COST_PER_1K_INPUT + (output_tokens / 1000) * LLM_COST_PER_1K_OUTPUT
        logger.info(
            f"LLM API call | model={self.model} | input_tokens={input_tokens} | "
            f"output_tokens={output_tokens} | tool_calls={len(message.get('tool_calls') or [])} | "
            f"latency_ms={int((time.time() - start_time) * 1000)} | cost_estimate=${cost:.4f}"
        )
        return message

    def chat_stream(self, messages: List[Dict]) -> Iterator[StreamChunk]:
        """Streaming completion without tools; yields chunks ending in a terminal one."""
        response = self._post(self._payload(messages, stream=True), stream=True)
        logger.info(f"LLM stream opened | model={self.model}")
        try:
            yield from iter_openai_stream(response.iter_content(chunk_size=None))
        finally:
            response.close()
