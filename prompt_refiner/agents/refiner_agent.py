"""Refiner Agent - Per-iteration prompt improvement."""

from agents import Agent, ModelSettings
from pydantic import BaseModel, Field

from prompt_refiner.config import LLMConfig


class RefinedPromptOutput(BaseModel):
    """Output structure for refined prompts."""

    improved_prompt: str = Field(description="The improved prompt text")
    changes_made: str = Field(description="Brief description of improvements made")


def create_refiner_agent(
    llm_config: LLMConfig,
    current_prompt: str,
    iteration: int,
    target_description: str,
    previous_summary: str | None = None,
    use_case: str | None = None,
) -> Agent:
    """
    Create a refiner agent that produces one improved prompt for an iteration.

    Args:
        llm_config: LLM configuration
        current_prompt: The prompt to improve
        iteration: Current iteration number (1-based)
        target_description: Human-readable quality targets
        previous_summary: Scores from the previous iteration, if any
        use_case: What the prompt is used for (assistant, summarization, ...)

    Returns:
        Configured Agent instance
    """
    previous_section = (
        f"\n**PREVIOUS ITERATION RESULT**:\n{previous_summary}\n" if previous_summary else ""
    )

    use_case_section = f"**USE CASE**: {use_case}\n" if use_case else ""

    instructions = f"""You are a prompt optimization specialist who iteratively improves prompts.

**CURRENT PROMPT** (Iteration {iteration}):
```
{current_prompt}
```

**QUALITY TARGETS**: {target_description}
{use_case_section}{previous_section}
**YOUR JOB**:
Produce ONE improved version of the prompt that moves responses toward the targets:

1. **Preserve Intent**: Keep the original goal and any constraints that already work
2. **Add Structure**: Request clear organisation (sections, lists, steps) where it helps
3. **Reduce Hallucination**: Ask for hedged claims only when uncertain, and no invented specifics
4. **Improve Consistency**: Make the expected output format explicit
5. **Stay Concise**: Don't make it unnecessarily verbose

This is iteration {iteration}, so build on previous refinements rather than starting over.
"""

    # OpenAI Agents SDK with structured output
    return Agent(
        name="PromptRefiner",
        model=llm_config.model,
        instructions=instructions.strip(),
        output_type=RefinedPromptOutput,
        model_settings=ModelSettings(temperature=llm_config.temperature),
    )
