"""Before/after evaluation of an original prompt against an optimized one."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod

from prompt_refiner.config import OptimizerConfig
from prompt_refiner.corpus import TestInputCorpus
from prompt_refiner.errors import EvaluationError, GenerationError
from prompt_refiner.metrics import hallucination_rate, structure_score
from prompt_refiner.optimizer.judge import QualityJudge
from prompt_refiner.optimizer.sampler import ResponseSampler
from prompt_refiner.types import (
    EvaluationResult,
    EvaluationScore,
    OptimizationTargets,
    TestCaseResult,
    TestRunMetrics,
)

logger = logging.getLogger(__name__)

QUALITY_WEIGHT = 0.5
STRUCTURE_WEIGHT = 0.3
GROUNDEDNESS_WEIGHT = 0.2

# Documented neutral score used when before/after evaluation fails
FALLBACK_SCORE = EvaluationScore(
    overall=0.5,
    response_quality=0.5,
    structure_compliance=0.5,
    hallucination_rate=0.5,
    pass_rate=0.5,
)


def overall_score(response_quality: float, structure: float, hallucination: float) -> float:
    """Weighted overall score; hallucination counts against it."""
    value = (
        QUALITY_WEIGHT * response_quality
        + STRUCTURE_WEIGHT * structure
        + GROUNDEDNESS_WEIGHT * (1.0 - hallucination)
    )
    return max(0.0, min(1.0, value))


def compute_improvement(before: EvaluationScore, after: EvaluationScore) -> float:
    """Relative change of the overall score in percent (0 when the baseline is 0)."""
    if before.overall == 0:
        return 0.0
    return (after.overall - before.overall) / before.overall * 100


def targets_met(targets: OptimizationTargets | None, score: EvaluationScore) -> bool:
    """
    Check a measured score against the targets.

    ``hallucination_rate`` is met when the measured rate is at or below the
    target; every other field when the measured value is at or above it. Unset
    fields are always satisfied.
    """
    if targets is None:
        return True
    for field, target in targets.model_dump().items():
        if target is None:
            continue
        measured = getattr(score, field)
        if field == "hallucination_rate":
            if measured > target:
                return False
        elif measured < target:
            return False
    return True


def fallback_evaluation() -> EvaluationResult:
    """Neutral evaluation used when scoring is unavailable."""
    return EvaluationResult(
        before_score=FALLBACK_SCORE.model_copy(),
        after_score=FALLBACK_SCORE.model_copy(),
        improvement=0.0,
    )


class BeforeAfterEvaluator(ABC):
    """Scores an optimized prompt against the original on the target dimensions."""

    @abstractmethod
    async def evaluate(self, original: str, optimized: str) -> EvaluationResult:
        """
        Compare ``optimized`` against ``original``.

        Raises:
            EvaluationError: If scoring cannot be completed
        """
        ...


class SampledEvaluator(BeforeAfterEvaluator):
    """Evaluator that simulates both prompts on domain test inputs and judges the outputs."""

    def __init__(
        self,
        sampler: ResponseSampler,
        judge: QualityJudge,
        test_corpus: TestInputCorpus,
        config: OptimizerConfig,
        domain: str = "general",
    ):
        self.sampler = sampler
        self.judge = judge
        self.test_corpus = test_corpus
        self.config = config
        self.domain = domain

    async def evaluate(self, original: str, optimized: str) -> EvaluationResult:
        start_time = time.perf_counter()
        test_inputs = await self.test_corpus.sample_inputs(
            self.domain, self.config.max_test_inputs
        )
        if not test_inputs:
            raise EvaluationError(f"No test inputs available for domain '{self.domain}'")

        try:
            if self.config.parallel_execution:
                test_cases = list(
                    await asyncio.gather(
                        *[self._run_case(original, optimized, t) for t in test_inputs]
                    )
                )
            else:
                test_cases = [await self._run_case(original, optimized, t) for t in test_inputs]
        except GenerationError as e:
            raise EvaluationError(f"Could not sample responses: {e}") from e

        before_scores = [pair[0] for pair in test_cases]
        after_results = [pair[1] for pair in test_cases]

        before = self._score([r.before_output for r in after_results], before_scores)
        after = self._score(
            [r.after_output for r in after_results], [r.score for r in after_results]
        )
        improvement = compute_improvement(before, after)

        passed = sum(1 for r in after_results if r.passed)
        average_improvement = sum(
            r.score - b for r, b in zip(after_results, before_scores, strict=True)
        ) / len(after_results)

        logger.info(
            f"Evaluated {len(after_results)} cases: "
            f"{before.overall:.2f} → {after.overall:.2f} ({improvement:+.1f}%)"
        )
        return EvaluationResult(
            before_score=before,
            after_score=after,
            improvement=improvement,
            test_cases=after_results,
            metrics=TestRunMetrics(
                total_tests=len(after_results),
                passed_tests=passed,
                average_improvement=average_improvement,
                execution_time=time.perf_counter() - start_time,
            ),
        )

    async def _run_case(
        self, original: str, optimized: str, test_input: str
    ) -> tuple[float, TestCaseResult]:
        before_output = await self.sampler.simulate(original, test_input)
        after_output = await self.sampler.simulate(optimized, test_input)
        before_score = await self.judge.score(test_input, before_output)
        after_score = await self.judge.score(test_input, after_output)
        return before_score, TestCaseResult(
            input=test_input,
            before_output=before_output,
            after_output=after_output,
            score=after_score,
            passed=after_score > self.config.pass_threshold,
        )

    def _score(self, outputs: list[str], judge_scores: list[float]) -> EvaluationScore:
        quality = sum(judge_scores) / len(judge_scores)
        structure = structure_score(outputs)
        hallucination = hallucination_rate(outputs)
        pass_rate = sum(1 for s in judge_scores if s > self.config.pass_threshold) / len(
            judge_scores
        )
        return EvaluationScore(
            overall=overall_score(quality, structure, hallucination),
            response_quality=quality,
            structure_compliance=structure,
            hallucination_rate=hallucination,
            pass_rate=pass_rate,
        )
