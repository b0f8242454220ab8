"""LLM Base Classes and Shared Code"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class BackendRequest:
    """Sampling parameters for a single completion call."""
    max_output_tokens: int
    temperature: float


class LLMError(Exception):
    """Raised when LLM operations fail."""
    pass


class LLMTimeout(LLMError):
    """The pipeline deadline passed before the backend answered.

    remaining_seconds is the whole seconds left when the call started,
    truncated; 0 when the deadline had already passed.
    """

    def __init__(self, remaining_seconds: int):
        self.remaining_seconds = remaining_seconds
        super().__init__(f"timeout after {remaining_seconds} seconds")


class LLMClient(ABC):
    """Abstract base for LLM clients.

    Implementations are stateless request/response adapters: one call to
    complete() is one logical completion, with retries handled inside.
    """

    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str, request: BackendRequest) -> str:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass
