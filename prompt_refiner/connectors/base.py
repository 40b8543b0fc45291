"""Base generator class for text-generation providers."""

from abc import ABC, abstractmethod


class BaseGenerator(ABC):
    """Base class for text-generation capabilities.

    Implementations wrap a provider client and must be safe to share across
    concurrent requests: every call is a stateless request/response.
    """

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_messages: list[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Generate a completion for a system prompt and user messages.

        Args:
            system_prompt: The system prompt to use (empty for none)
            user_messages: User turns, sent in order
            model: Provider model id
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            The generated text

        Raises:
            GenerationError: On provider failure or timeout
        """
        ...
