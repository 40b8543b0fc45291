"""Heuristic evaluation of prompts across several models."""

import asyncio
import logging
from collections.abc import Callable

from prompt_refiner.config import ModelName, OptimizerConfig
from prompt_refiner.errors import GenerationError
from prompt_refiner.metrics import compute_metrics
from prompt_refiner.optimizer.sampler import ResponseSampler
from prompt_refiner.types import ModelComparison, ModelEvaluationResult

logger = logging.getLogger(__name__)

HALLUCINATION_WEIGHT = 0.4
STRUCTURE_WEIGHT = 0.3
CONSISTENCY_WEIGHT = 0.3


def failure_sentinel(model: str) -> str:
    return f"Error: Failed to generate response from {model}"


def relative_change(old: float, new: float, lower_is_better: bool = False) -> float:
    """Percent change from ``old`` to ``new``, signed so that positive means better."""
    if old == 0:
        return 0.0
    delta = old - new if lower_is_better else new - old
    return delta / old * 100


def calculate_model_improvement(
    original: ModelEvaluationResult, optimized: ModelEvaluationResult
) -> float:
    """
    Weighted relative improvement of one model's metrics.

    Args:
        original: Metrics under the original prompt
        optimized: Metrics under the optimized prompt

    Returns:
        Improvement in percent (hallucination 0.4, structure 0.3, consistency 0.3)
    """
    return (
        relative_change(original.hallucination_rate, optimized.hallucination_rate, True)
        * HALLUCINATION_WEIGHT
        + relative_change(original.structure_score, optimized.structure_score) * STRUCTURE_WEIGHT
        + relative_change(original.consistency_score, optimized.consistency_score)
        * CONSISTENCY_WEIGHT
    )


class ModelBenchmark:
    """Samples several models under a prompt and computes heuristic metrics per model."""

    def __init__(
        self,
        sampler: ResponseSampler,
        config: OptimizerConfig,
        progress_callback: Callable[[str], None] | None = None,
    ):
        self.sampler = sampler
        self.config = config
        self._print_progress = progress_callback or (lambda msg: None)

    async def evaluate_model(self, prompt: str, model: ModelName) -> ModelEvaluationResult:
        """
        Sample one model and compute its metrics.

        Any failed or timed-out sample degrades the whole model to zero-valued
        metrics with a sentinel error string.

        Args:
            prompt: Prompt under evaluation
            model: Model to sample

        Returns:
            Per-model metrics, never raising for provider failures
        """
        name = ModelName(model).value
        try:
            responses = await self.sampler.sample(prompt, model, self.config.sample_size)
        except GenerationError as e:
            logger.error(f"Error generating response from {name}: {e}")
            return ModelEvaluationResult.failed(name, failure_sentinel(name))

        metrics = compute_metrics(responses)
        return ModelEvaluationResult(
            model=name,
            hallucination_rate=metrics.hallucination_rate,
            structure_score=metrics.structure_score,
            consistency_score=metrics.consistency_score,
            total_samples=metrics.total_samples,
            responses=responses,
        )

    async def run_model_evaluations(
        self, prompt: str, models: list[ModelName]
    ) -> list[ModelEvaluationResult]:
        """
        Evaluate every model, in parallel or one at a time depending on config.

        Results are returned in the order of ``models``.
        """
        if self.config.parallel_execution:
            results = await asyncio.gather(
                *[self.evaluate_model(prompt, model) for model in models]
            )
            return list(results)

        results = []
        for i, model in enumerate(models, 1):
            self._print_progress(f"  Evaluating model {i}/{len(models)}...")
            results.append(await self.evaluate_model(prompt, model))
        return results

    async def compare(
        self, original: str, optimized: str, models: list[ModelName]
    ) -> ModelComparison:
        """Evaluate both prompts on every model and compute per-model improvements."""
        self._print_progress(f"Evaluating {len(models)} models on both prompts...")
        if self.config.parallel_execution:
            original_results, optimized_results = await asyncio.gather(
                self.run_model_evaluations(original, models),
                self.run_model_evaluations(optimized, models),
            )
        else:
            original_results = await self.run_model_evaluations(original, models)
            optimized_results = await self.run_model_evaluations(optimized, models)

        # Failed models carry zero-valued metrics, which would read as a change
        improvements = {
            opt.model: calculate_model_improvement(orig, opt)
            for orig, opt in zip(original_results, optimized_results, strict=True)
            if orig.error is None and opt.error is None
        }
        overall = sum(improvements.values()) / len(improvements) if improvements else 0.0

        return ModelComparison(
            original_results=original_results,
            optimized_results=optimized_results,
            improvements=improvements,
            overall_improvement=overall,
        )
