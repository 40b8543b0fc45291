"""OpenAI generator for prompt refinement."""

import asyncio
import logging

from openai import AsyncOpenAI, OpenAIError

from prompt_refiner.connectors.base import BaseGenerator
from prompt_refiner.errors import GenerationError

logger = logging.getLogger(__name__)


class OpenAIGenerator(BaseGenerator):
    """Generator backed by the OpenAI chat completions API.

    Setting ``base_url`` points the client at any OpenAI-compatible gateway,
    which is how non-OpenAI model ids from the registry are served.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
    ):
        """Initialize OpenAI generator.

        Args:
            api_key: OpenAI API key (if None, the client reads OPENAI_API_KEY)
            base_url: Optional OpenAI-compatible endpoint
            timeout_seconds: Upper bound for a single completion call
        """
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.timeout_seconds = timeout_seconds
        logger.info(f"OpenAIGenerator initialized (base_url={base_url or 'default'})")

    async def generate(
        self,
        system_prompt: str,
        user_messages: list[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Generate via OpenAI API (async).

        Args:
            system_prompt: System prompt to use
            user_messages: User turns, sent in order
            model: Provider model id
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            Model response text

        Raises:
            GenerationError: If the API call fails or times out
        """
        messages = [{"role": "system", "content": system_prompt}] if system_prompt else []
        messages.extend({"role": "user", "content": message} for message in user_messages)

        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"OpenAI call to {model} timed out after {self.timeout_seconds}s")
            raise GenerationError(f"Generation timed out for {model}", model=model) from e
        except OpenAIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise GenerationError(f"Generation failed for {model}: {e}", model=model) from e

        return completion.choices[0].message.content or ""
