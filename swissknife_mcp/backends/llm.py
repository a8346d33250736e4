"""
LLM completion backends built on the vendor SDKs.

The SDK clients share the backend's pooled HTTP client, so connection
limits and cleanup work the same way as for the plain HTTP backends.
The Anthropic SDK is built on httpx2 and only accepts an httpx2 client.
"""

from abc import abstractmethod
from typing import Any, Dict, List, Optional
from pydantic import Field

import anthropic
import httpx2
import openai

from ..models.base import ToolArguments
from ..models.errors import BackendError, BackendErrorKind
from ..models.tools import BackendOperation
from ..utils.constants import DEFAULT_TIMEOUT
from .base import HTTPBackendClient, classify_status, parse_retry_after, truncate


class CompletionArguments(ToolArguments):
    """Arguments shared by the completion tools."""
    prompt: str = Field(..., min_length=1, description="The prompt to complete")
    model: Optional[str] = Field(None, description="Model to use (defaults to the backend's model)")
    max_tokens: int = Field(1000, ge=1, le=32000, description="Maximum tokens to generate")
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0, description="Sampling temperature")
    system: Optional[str] = Field(None, description="Optional system prompt")


class LLMBackend(HTTPBackendClient):
    """
    Common SDK error translation for LLM vendors.

    Subclasses set ``sdk`` to the vendor module; both SDKs expose the same
    exception hierarchy.
    """

    sdk: Any = None
    default_model: str = ""
    operation_name: str = ""
    operation_description: str = ""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._sdk_client: Any = None
        self.model: str = self.config.options.get("model", self.default_model)
        self.operation_map = {
            self.operation_name: self.complete,
        }

    def operations(self) -> List[BackendOperation]:
        return [
            BackendOperation(
                name=self.operation_name,
                description=self.operation_description,
                input_model=CompletionArguments,
            ),
        ]

    async def close(self) -> None:
        self._sdk_client = None
        await super().close()

    def _translate_error(self, error: Exception) -> BackendError:
        """Map an SDK exception onto a backend error kind."""
        if isinstance(error, self.sdk.APITimeoutError):
            kind = BackendErrorKind.TIMEOUT
            status_code = None
            retry_after = None
        elif isinstance(error, self.sdk.APIConnectionError):
            kind = BackendErrorKind.TRANSIENT_NETWORK
            status_code = None
            retry_after = None
        elif isinstance(error, self.sdk.APIStatusError):
            status_code = error.status_code
            kind = classify_status(status_code) or BackendErrorKind.UNKNOWN
            retry_after = parse_retry_after(error.response.headers.get("retry-after"))
        else:
            kind = BackendErrorKind.UNKNOWN
            status_code = None
            retry_after = None

        return BackendError(
            kind,
            f"{self.name} API error: {type(error).__name__}",
            detail=truncate(str(error)),
            status_code=status_code,
            retry_after=retry_after,
        )

    async def complete(self, **arguments: Any) -> Dict[str, Any]:
        try:
            return await self._complete(**arguments)
        except self.sdk.APIError as e:
            raise self._translate_error(e) from e

    @abstractmethod
    async def _complete(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run one completion with the vendor SDK."""


class OpenAIBackend(LLMBackend):
    """Chat completions through the OpenAI SDK (or a compatible endpoint)."""

    backend_name = "openai"
    sdk = openai
    default_model = "gpt-4o-mini"
    operation_name = "llm_complete"
    operation_description = "Generate text completion using an OpenAI chat model"

    @property
    def description(self) -> str:
        return "OpenAI chat completions"

    def _get_sdk_client(self) -> openai.AsyncOpenAI:
        """Get or create the OpenAI client."""
        if self._sdk_client is None:
            self._sdk_client = openai.AsyncOpenAI(
                api_key=self._require_api_key(),
                base_url=self.config.base_url or None,
                max_retries=self.config.max_retries,
                http_client=self._get_client(),
            )
        return self._sdk_client

    async def _complete(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> Dict[str, Any]:
        client = self._get_sdk_client()

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        params = {
            "model": model or self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        # Remove None values
        params = {k: v for k, v in params.items() if v is not None}

        response = await client.chat.completions.create(**params)
        choice = response.choices[0] if response.choices else None

        return {
            "model": response.model,
            "content": choice.message.content if choice else None,
            "finish_reason": choice.finish_reason if choice else None,
            "usage": response.usage.model_dump() if response.usage else None,
        }


class AnthropicBackend(LLMBackend):
    """Messages API through the Anthropic SDK."""

    backend_name = "anthropic"
    sdk = anthropic
    default_model = "claude-3-5-haiku-latest"
    operation_name = "claude_complete"
    operation_description = "Generate text completion using an Anthropic Claude model"

    @property
    def description(self) -> str:
        return "Anthropic Claude messages"

    def _get_client(self) -> httpx2.AsyncClient:
        """Get or create the pooled httpx2 client handed to the SDK."""
        if self._client is None:
            self._client = httpx2.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=httpx2.Timeout(self.config.timeout or DEFAULT_TIMEOUT),
                limits=httpx2.Limits(
                    max_connections=self.config.max_connections,
                    max_keepalive_connections=self.config.max_connections,
                ),
                transport=self._transport,
            )
        return self._client

    def _get_sdk_client(self) -> anthropic.AsyncAnthropic:
        """Get or create the Anthropic client."""
        if self._sdk_client is None:
            self._sdk_client = anthropic.AsyncAnthropic(
                api_key=self._require_api_key(),
                base_url=self.config.base_url or None,
                max_retries=self.config.max_retries,
                http_client=self._get_client(),
            )
        return self._sdk_client

    async def _complete(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> Dict[str, Any]:
        client = self._get_sdk_client()

        params = {
            "model": model or self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "system": system,
            "temperature": temperature,
        }
        params = {k: v for k, v in params.items() if v is not None}

        response = await client.messages.create(**params)
        text = "".join(block.text for block in response.content if block.type == "text")

        return {
            "model": response.model,
            "content": text,
            "finish_reason": response.stop_reason,
            "usage": {
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        }
