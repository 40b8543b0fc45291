"""Assemble optimization results: explanation, line-level changes, confidence."""

import difflib
import logging

from prompt_refiner.config import LLMConfig
from prompt_refiner.connectors import BaseGenerator
from prompt_refiner.errors import GenerationError
from prompt_refiner.optimizer.controller import LOW_CONFIDENCE, IterationOutcome
from prompt_refiner.types import (
    OptimizationChange,
    OptimizationResult,
    PatternInsights,
    PromptCandidate,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
FALLBACK_EXPLANATION = "Prompt optimized using automated engineering techniques"
NO_CHANGE_EXPLANATION = "No optimization applied; the original prompt was kept."

EXPLANATION_SYSTEM_PROMPT = (
    "Generate a clear explanation of how a prompt was optimized, highlighting key "
    "improvements and expected benefits."
)


def detect_changes(
    original: str, optimized: str, reason: str = "Automated prompt engineering optimization"
) -> list[OptimizationChange]:
    """
    Line-level changes between two prompts.

    Replaced lines are paired into modifications; unpaired lines on either
    side become additions or deletions. Line numbers refer to the original.

    Args:
        original: Original prompt
        optimized: Optimized prompt
        reason: Reason attached to every change

    Returns:
        Changes in original line order (empty when the prompts are identical)
    """
    original_lines = original.splitlines()
    optimized_lines = optimized.splitlines()
    matcher = difflib.SequenceMatcher(a=original_lines, b=optimized_lines, autojunk=False)

    changes = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        removed = original_lines[i1:i2]
        added = optimized_lines[j1:j2]
        paired = min(len(removed), len(added))

        for offset in range(paired):
            changes.append(
                OptimizationChange(
                    type="modification",
                    line=i1 + offset + 1,
                    original=removed[offset],
                    optimized=added[offset],
                    reason=reason,
                )
            )
        for offset, line in enumerate(removed[paired:], start=paired):
            changes.append(
                OptimizationChange(
                    type="deletion", line=i1 + offset + 1, original=line, reason=reason
                )
            )
        # Additions point at the original line they follow (1 for the very top)
        for line in added[paired:]:
            changes.append(
                OptimizationChange(type="addition", line=max(i2, 1), optimized=line, reason=reason)
            )
    return changes


class ResultAssembler:
    """Builds OptimizationResult objects for every optimization path."""

    def __init__(self, generator: BaseGenerator, llm_config: LLMConfig):
        """
        Initialize the assembler.

        Args:
            generator: Text-generation capability used for explanations
            llm_config: LLM settings for explanations
        """
        self.generator = generator
        self.llm_config = llm_config

    async def explain(self, original: str, optimized: str, reasoning: str) -> str:
        """Natural-language explanation of the optimization, or a canned fallback."""
        if optimized == original:
            return NO_CHANGE_EXPLANATION

        request = (
            f'Original: "{original}"\nOptimized: "{optimized}"\nReasoning: "{reasoning}"\n\n'
            "Provide a clear explanation of the optimization:"
        )
        try:
            text = await self.generator.generate(
                EXPLANATION_SYSTEM_PROMPT,
                [request],
                self.llm_config.model,
                self.llm_config.max_tokens,
                self.llm_config.temperature,
            )
        except GenerationError as e:
            logger.error(f"Error generating explanation: {e}")
            return FALLBACK_EXPLANATION
        return text.strip() or FALLBACK_EXPLANATION

    async def from_candidate(
        self,
        original: str,
        best: PromptCandidate | None,
        insights: PatternInsights | None = None,
    ) -> OptimizationResult:
        """Result of the single-shot candidate pipeline."""
        optimized = best.prompt if best else original
        reasoning = best.metadata.reasoning if best else "No optimization applied"
        explanation = await self.explain(original, optimized, reasoning)

        return OptimizationResult(
            original_content=original,
            optimized_content=optimized,
            explanation=explanation,
            changes=detect_changes(original, optimized),
            confidence=best.score if best else DEFAULT_CONFIDENCE,
            mode="single_shot",
            best_candidate=best,
            insights=insights,
        )

    async def from_iterations(self, original: str, outcome: IterationOutcome) -> OptimizationResult:
        """Result of a completed iteration run, with a generated explanation."""
        if outcome.improved and outcome.best_iteration is not None:
            best = outcome.best_iteration
            explanation = await self.explain(
                original,
                best.content,
                f"Best of {len(outcome.history)} iterations "
                f"({best.improvement:+.1f}% overall improvement)",
            )
        else:
            explanation = NO_CHANGE_EXPLANATION
        return self.build_iterative(original, outcome, explanation)

    def build_iterative(
        self, original: str, outcome: IterationOutcome, explanation: str
    ) -> OptimizationResult:
        """
        Result for an iteration run, complete or partial.

        The best iteration's content is returned only when it beats the original
        prompt; otherwise the original is kept with low confidence.
        """
        if outcome.improved and outcome.best_iteration is not None:
            optimized = outcome.best_iteration.content
            confidence = outcome.best_iteration.evaluation.after_score.overall
        else:
            optimized = original
            confidence = LOW_CONFIDENCE

        return OptimizationResult(
            original_content=original,
            optimized_content=optimized,
            explanation=explanation,
            changes=detect_changes(original, optimized, reason="Iterative refinement"),
            confidence=confidence,
            mode="iterative",
            iteration_history=outcome.history,
            stopping_reason=outcome.stopping_reason,
            total_cost=outcome.total_cost,
        )
