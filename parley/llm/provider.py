"""Provider-agnostic LLM interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# ════════════════════════════════════════════════════════
# LLM Exception Hierarchy — classify errors by type,
# not by string matching.
# ════════════════════════════════════════════════════════

class LLMError(Exception):
    """Base class for all LLM provider errors."""
    pass

class LLMRateLimitError(LLMError):
    """429 — rate limited."""
    pass

class LLMAuthError(LLMError):
    """401/403 — authentication or authorization failure."""
    pass

class LLMBadRequestError(LLMError):
    """400 — bad request (malformed prompt, context too long, etc.)."""
    pass

class LLMEmptyResponseError(LLMError):
    """LLM returned empty content."""
    pass


class ModelClass(str, Enum):
    """Model tier requested by a call site; the provider maps it to a model."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    VISION = "vision"


@dataclass
class ChatMessage:
    role: str           # 'system', 'user', 'assistant'
    content: str
    metadata: Optional[dict] = None   # {'image_url': ...} for vision input


@dataclass
class ChatResponse:
    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class EmbeddingResponse:
    vector: list[float]
    model: str
    dimensions: int
    input_tokens: int = 0


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        model_class: ModelClass = ModelClass.MEDIUM,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> ChatResponse:
        """Send a chat completion request."""
        ...

    @abstractmethod
    async def embed(
        self,
        text: str,
        model: Optional[str] = None,
    ) -> EmbeddingResponse:
        """Generate an embedding vector for text."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        ...

    @property
    def embedding_dimensions(self) -> int:
        """Length of the zero vector used for records stored without an embedding."""
        return 1536
