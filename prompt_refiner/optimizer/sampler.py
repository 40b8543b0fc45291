"""Tools for sampling model responses under a prompt."""

import asyncio
import logging

from prompt_refiner.config import ModelName, OptimizerConfig, resolve_model
from prompt_refiner.connectors import BaseGenerator
from prompt_refiner.errors import GenerationError

logger = logging.getLogger(__name__)

SAMPLE_TEMPERATURE = 0.7
SAMPLE_MAX_TOKENS = 1000


class ResponseSampler:
    """Draws responses from the text-generation capability with a per-call timeout."""

    def __init__(self, generator: BaseGenerator, config: OptimizerConfig):
        """
        Initialize the sampler.

        Args:
            generator: Shared text-generation capability
            config: Optimizer configuration (timeouts, simulator LLM)
        """
        self.generator = generator
        self.config = config

    async def _generate(
        self,
        system_prompt: str,
        user_input: str,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Single generation call bounded by ``sample_timeout_seconds``."""
        try:
            return await asyncio.wait_for(
                self.generator.generate(
                    system_prompt, [user_input], model, max_tokens, temperature
                ),
                timeout=self.config.sample_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise GenerationError(
                f"Model response timeout after {self.config.sample_timeout_seconds}s",
                model=model,
            ) from e

    async def simulate(self, system_prompt: str, user_input: str) -> str:
        """
        Simulate the assistant configured by ``system_prompt`` answering ``user_input``.

        Args:
            system_prompt: Candidate prompt used as the system prompt
            user_input: Test input

        Returns:
            Simulated response text

        Raises:
            GenerationError: On provider failure or timeout
        """
        llm = self.config.simulator_llm
        logger.debug(f"Simulating response for input: {user_input[:50]}...")
        response = await self._generate(
            system_prompt, user_input, llm.model, llm.max_tokens, llm.temperature
        )
        logger.debug(f"Received response: {response[:100]}...")
        return response

    async def sample(self, prompt: str, model: ModelName, count: int) -> list[str]:
        """
        Draw ``count`` independent responses from ``model`` with ``prompt`` as user input.

        Args:
            prompt: Prompt under evaluation
            model: Configured model name
            count: Number of samples

        Returns:
            Sampled responses, in call order

        Raises:
            GenerationError: If any single sample fails or times out
        """
        model_id = resolve_model(model)
        calls = [
            self._generate("", prompt, model_id, SAMPLE_MAX_TOKENS, SAMPLE_TEMPERATURE)
            for _ in range(count)
        ]
        return list(await asyncio.gather(*calls))
