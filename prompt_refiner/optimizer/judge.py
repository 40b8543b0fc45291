"""Response quality judges."""

import asyncio
import logging
import re
from abc import ABC, abstractmethod

from agents import Runner
from agents.exceptions import AgentsException
from openai import OpenAIError

from prompt_refiner.agents.judge_agent import JudgeOutput, create_judge_agent
from prompt_refiner.config import LLMConfig
from prompt_refiner.connectors import BaseGenerator
from prompt_refiner.errors import GenerationError

logger = logging.getLogger(__name__)

# Used when a judgement cannot be obtained
DEFAULT_JUDGE_SCORE = 0.5

SCORE_PATTERN = re.compile(r"(\d*\.?\d+)")


class QualityJudge(ABC):
    """Scores a response to a test input on [0, 1]."""

    @abstractmethod
    async def score(self, test_input: str, response: str) -> float:
        """Return the quality score of ``response`` for ``test_input``."""
        ...


class AgentQualityJudge(QualityJudge):
    """LLM-as-judge scorer built on the structured-output judge agent."""

    def __init__(self, llm_config: LLMConfig, timeout_seconds: float | None = None):
        self.llm_config = llm_config
        self.timeout_seconds = timeout_seconds

    async def score(self, test_input: str, response: str) -> float:
        judge = create_judge_agent(self.llm_config, test_input)
        try:
            result = await asyncio.wait_for(
                Runner.run(judge, f"Score this response:\n\n{response}"),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Judge timed out after {self.timeout_seconds}s")
            return DEFAULT_JUDGE_SCORE
        except (AgentsException, OpenAIError) as e:
            logger.error(f"Error evaluating response: {e}")
            return DEFAULT_JUDGE_SCORE

        # final_output is JudgeOutput due to agent's output_type
        output: JudgeOutput = result.final_output  # type: ignore[assignment]
        return max(0.0, min(1.0, output.score))


def parse_score(text: str) -> float:
    """First number in the text clamped to [0, 1], or the default score."""
    match = SCORE_PATTERN.search(text)
    if match is None:
        return DEFAULT_JUDGE_SCORE
    return max(0.0, min(1.0, float(match.group(1))))


class GeneratorQualityJudge(QualityJudge):
    """Judge that asks the plain text generator for a bare numeric score."""

    SYSTEM_PROMPT = (
        "Evaluate the quality of an AI response. Consider relevance, clarity, completeness, "
        "and helpfulness. Return only a score from 0.0 to 1.0."
    )

    def __init__(self, generator: BaseGenerator, llm_config: LLMConfig):
        self.generator = generator
        self.llm_config = llm_config

    async def score(self, test_input: str, response: str) -> float:
        request = f'Input: "{test_input}"\nResponse: "{response}"\n\nScore (0.0-1.0):'
        try:
            text = await self.generator.generate(
                self.SYSTEM_PROMPT,
                [request],
                self.llm_config.model,
                self.llm_config.max_tokens,
                self.llm_config.temperature,
            )
        except GenerationError as e:
            logger.error(f"Error evaluating response: {e}")
            return DEFAULT_JUDGE_SCORE
        return parse_score(text)
