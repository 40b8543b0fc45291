"""Structured-output agents used by the optimizer."""

from prompt_refiner.agents.client import configure_agent_client
from prompt_refiner.agents.judge_agent import JudgeOutput, create_judge_agent
from prompt_refiner.agents.refiner_agent import RefinedPromptOutput, create_refiner_agent

__all__ = [
    "JudgeOutput",
    "RefinedPromptOutput",
    "configure_agent_client",
    "create_judge_agent",
    "create_refiner_agent",
]
