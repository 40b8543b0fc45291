"""Fast, non-iterative optimization used on timeouts and as a last resort."""

import logging
import re

from pydantic import BaseModel, Field, ValidationError

from prompt_refiner.config import LLMConfig
from prompt_refiner.connectors import BaseGenerator
from prompt_refiner.errors import GenerationError
from prompt_refiner.optimizer.assembler import detect_changes
from prompt_refiner.types import OptimizationChange, OptimizationResult

logger = logging.getLogger(__name__)

FAST_CONFIDENCE = 0.85
BASIC_CONFIDENCE = 0.7
FAST_TEMPERATURE = 0.3
FAST_MAX_TOKENS = 800
SHORT_PROMPT_LENGTH = 100

ROLE_PREFIX = "You are an expert assistant. "
DETAIL_SUFFIX = " Please provide a detailed and helpful response."

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

FAST_SYSTEM_PROMPT = """\
You are an expert prompt engineer. Optimize the given prompt to be more effective,
clear, and specific.

Return a JSON response with:
{
  "optimizedPrompt": "the improved prompt",
  "explanation": "brief explanation of changes",
  "changes": [
    {
      "type": "addition|modification|deletion",
      "description": "what changed",
      "reasoning": "why this improves the prompt"
    }
  ]
}

Focus on:
- Clarity and specificity
- Better structure
- More actionable instructions
- Reducing ambiguity"""


class FastChange(BaseModel):
    type: str = "modification"
    description: str = ""
    reasoning: str = ""


class FastOptimizationPayload(BaseModel):
    """JSON object returned by the fast optimization call."""

    optimized_prompt: str = Field(default="", alias="optimizedPrompt")
    explanation: str = ""
    changes: list[FastChange] = Field(default_factory=list)


def basic_optimization(original: str) -> OptimizationResult:
    """
    Deterministic heuristic optimization that needs no model call.

    Adds a role line when the prompt has none and asks for detail when the
    prompt is short.
    """
    optimized = original
    if "Role:" not in optimized and "You are" not in optimized:
        optimized = f"{ROLE_PREFIX}{optimized}"
    if len(optimized) < SHORT_PROMPT_LENGTH:
        optimized += DETAIL_SUFFIX

    return OptimizationResult(
        original_content=original,
        optimized_content=optimized,
        explanation="Basic structural improvements applied to enhance clarity and specificity.",
        changes=[
            OptimizationChange(
                type="modification",
                line=1,
                original=original,
                optimized=optimized,
                reason="Enhanced structure and clarity",
            )
        ],
        confidence=BASIC_CONFIDENCE,
        mode="fast",
    )


def _payload_changes(payload: FastOptimizationPayload, original: str) -> list[OptimizationChange]:
    if not payload.changes:
        return detect_changes(original, payload.optimized_prompt)
    changes = []
    for change in payload.changes:
        change_type = change.type if change.type in ("addition", "deletion") else "modification"
        changes.append(
            OptimizationChange(
                type=change_type,
                reason=change.reasoning or change.description or "Improved clarity",
            )
        )
    return changes


async def fast_optimize(
    generator: BaseGenerator, llm_config: LLMConfig, original: str
) -> OptimizationResult:
    """
    Single-call optimization returning JSON, falling back to ``basic_optimization``.

    Args:
        generator: Text-generation capability
        llm_config: LLM settings (model is used; temperature and length are fixed)
        original: Prompt to optimize

    Returns:
        Fast-mode result; never raises for provider or parse failures
    """
    request = (
        f'Original prompt: "{original}"\n\n'
        "Optimize this prompt and return the JSON response."
    )
    try:
        text = await generator.generate(
            FAST_SYSTEM_PROMPT, [request], llm_config.model, FAST_MAX_TOKENS, FAST_TEMPERATURE
        )
    except GenerationError as e:
        logger.error(f"Fast optimization failed, using basic optimization: {e}")
        return basic_optimization(original)

    match = JSON_OBJECT_PATTERN.search(text)
    if match is None:
        logger.warning("Fast optimization returned no JSON object, using basic optimization")
        return basic_optimization(original)

    try:
        payload = FastOptimizationPayload.model_validate_json(match.group(0))
    except ValidationError as e:
        logger.warning(f"Fast optimization JSON did not parse, using basic optimization: {e}")
        return basic_optimization(original)

    optimized = payload.optimized_prompt.strip() or original
    payload = payload.model_copy(update={"optimized_prompt": optimized})
    return OptimizationResult(
        original_content=original,
        optimized_content=optimized,
        explanation=payload.explanation or "Prompt optimized for better clarity and effectiveness.",
        changes=_payload_changes(payload, original),
        confidence=FAST_CONFIDENCE,
        mode="fast",
    )
