"""OpenAI-compatible provider (OpenAI, Groq, Together, etc.)."""

import logging
import httpx
from typing import Optional
from .provider import (
    LLMProvider,
    ChatMessage,
    ChatResponse,
    EmbeddingResponse,
    ModelClass,
    LLMAuthError,
    LLMBadRequestError,
    LLMEmptyResponseError,
    LLMError,
    LLMRateLimitError,
)

logger = logging.getLogger("parley.llm.openai")


def _merge_consecutive(messages: list[dict]) -> list[dict]:
    """Merge consecutive same-role text messages."""
    if not messages:
        return messages
    result = [messages[0]]
    for msg in messages[1:]:
        prev = result[-1]
        if (
            msg["role"] == prev["role"]
            and msg["role"] in ("user", "system")
            and isinstance(msg.get("content"), str)
            and isinstance(prev.get("content"), str)
        ):
            prev["content"] = (prev["content"] + "\n" + msg["content"]).strip()
        else:
            result.append(msg)
    return result


def raise_for_llm_status(resp: httpx.Response):
    """Map an error status code to the LLM exception hierarchy."""
    status = resp.status_code
    if status < 400:
        return
    detail = resp.text[:300]
    if status == 429:
        retry_after = resp.headers.get("retry-after", "a moment")
        raise LLMRateLimitError(f"Rate limited (429). Retry after {retry_after}.")
    if status in (401, 403):
        raise LLMAuthError(f"Authentication failed ({status}): {detail}")
    if status == 400:
        raise LLMBadRequestError(f"Bad request (400): {detail}")
    raise LLMError(f"Provider error ({status}): {detail}")


class OpenAIProvider(LLMProvider):
    """OpenAI-compatible API provider.

    Works with any OpenAI-compatible endpoint:
    - OpenAI: https://api.openai.com/v1
    - Groq:   https://api.groq.com/openai/v1
    - Together: https://api.together.xyz/v1
    """

    def __init__(
        self,
        api_key: str,
        models: Optional[dict[ModelClass, str]] = None,
        embedding_model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        provider_name: str = "openai",
        timeout: float = 120.0,
    ):
        self.api_key = api_key
        self.models = models or {
            ModelClass.SMALL: "gpt-4o-mini",
            ModelClass.MEDIUM: "gpt-4o",
            ModelClass.LARGE: "gpt-4o",
            ModelClass.VISION: "gpt-4o-mini",
        }
        self.embedding_model = embedding_model
        self.base_url = base_url.rstrip("/")
        self._provider_name = provider_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "OpenAIProvider":
        return cls(
            api_key=settings.openai_api_key or "",
            models={
                ModelClass.SMALL: settings.small_model,
                ModelClass.MEDIUM: settings.medium_model,
                ModelClass.LARGE: settings.large_model,
                ModelClass.VISION: settings.vision_model,
            },
            embedding_model=settings.embedding_model,
            base_url=settings.openai_base_url,
        )

    @property
    def name(self) -> str:
        return self._provider_name

    def _get_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _format_messages(self, messages: list[ChatMessage]) -> list[dict]:
        """Convert ChatMessages to OpenAI format, inlining image URLs."""
        formatted = []
        for msg in messages:
            image_url = msg.metadata.get("image_url") if msg.metadata else None
            if image_url and msg.role == "user":
                formatted.append({
                    "role": "user",
                    "content": [
                        {"type": "text", "text": msg.content},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                })
            else:
                formatted.append({"role": msg.role, "content": msg.content})
        return _merge_consecutive(formatted)

    async def chat(
        self,
        messages: list[ChatMessage],
        model_class: ModelClass = ModelClass.MEDIUM,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> ChatResponse:
        model = self.models.get(model_class) or self.models[ModelClass.MEDIUM]
        body: dict = {
            "model": model,
            "messages": self._format_messages(messages),
            "temperature": temperature,
        }
        if max_tokens and max_tokens > 0:
            body["max_tokens"] = max_tokens

        logger.debug(f"Request: model={model}, class={model_class.value}, messages={len(messages)}")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers=self._get_headers(),
            )
            raise_for_llm_status(resp)
            data = resp.json()

        choices = data.get("choices") or []
        content = (choices[0].get("message", {}).get("content") or "") if choices else ""
        if not content.strip():
            raise LLMEmptyResponseError(f"Empty response from {model}")

        usage = data.get("usage", {})
        return ChatResponse(
            content=content,
            model=data.get("model", model),
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
        )

    async def embed(
        self,
        text: str,
        model: Optional[str] = None,
    ) -> EmbeddingResponse:
        model = model or self.embedding_model

        body = {
            "model": model,
            "input": text,
        }

        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.post(
                f"{self.base_url}/embeddings",
                json=body,
                headers=self._get_headers(),
            )
            raise_for_llm_status(resp)
            data = resp.json()

        vector = data["data"][0]["embedding"]
        usage = data.get("usage", {})

        return EmbeddingResponse(
            vector=vector,
            model=model,
            dimensions=len(vector),
            input_tokens=usage.get("total_tokens", 0),
        )
