"""Judge Agent - LLM-as-judge response quality scorer."""

from agents import Agent, ModelSettings
from pydantic import BaseModel, Field

from prompt_refiner.config import LLMConfig


class JudgeOutput(BaseModel):
    """Output structure for a quality judgement."""

    score: float = Field(ge=0.0, le=1.0, description="Overall response quality (0.0-1.0)")
    reasoning: str = Field(description="Brief explanation of the score")


def create_judge_agent(llm_config: LLMConfig, test_input: str) -> Agent:
    """
    Create a judge agent for scoring one response to a test input.

    Args:
        llm_config: LLM configuration (use zero temperature for consistent scoring)
        test_input: The user input the response answers

    Returns:
        Configured Agent instance
    """
    instructions = f"""You are an objective evaluator of AI assistant responses.

**USER INPUT**: "{test_input}"

**YOUR JOB**:
You will receive the assistant's response to this input. Score its quality from 0.0 to 1.0,
considering:
- Relevance: does it answer what was asked?
- Clarity: is it easy to follow?
- Completeness: does it cover what the user needs?
- Helpfulness: would the user be able to act on it?

Scale:
- 0.0-0.2: irrelevant or unusable
- 0.3-0.5: partially useful with major gaps
- 0.6-0.8: good, with minor issues
- 0.9-1.0: excellent

Be objective and consistent.
"""

    return Agent(
        name="Judge",
        model=llm_config.model,
        instructions=instructions.strip(),
        output_type=JudgeOutput,
        model_settings=ModelSettings(temperature=llm_config.temperature),
    )
