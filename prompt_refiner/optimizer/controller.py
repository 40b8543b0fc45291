"""Iteration controller: refine, evaluate, and stop on targets, budget or diminishing returns."""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from agents import Runner
from agents.exceptions import AgentsException
from openai import OpenAIError
from pydantic import BaseModel, Field

from prompt_refiner.agents.refiner_agent import RefinedPromptOutput, create_refiner_agent
from prompt_refiner.config import OptimizationConfig, OptimizerConfig
from prompt_refiner.errors import BudgetExceeded, EvaluationError
from prompt_refiner.optimizer.evaluator import (
    BeforeAfterEvaluator,
    fallback_evaluation,
    targets_met,
)
from prompt_refiner.types import EvaluationResult, OptimizationIteration, StoppingReason

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 5
LOW_CONFIDENCE = 0.3

# Absorbs float drift when summing per-iteration costs
BUDGET_EPSILON = 1e-9


class ControllerState(str, Enum):
    """Lifecycle of one iteration run."""

    INIT = "init"
    ITERATING = "iterating"
    TARGETS_MET = "targets_met"
    DIMINISHING_RETURNS = "diminishing_returns"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    BUDGET_EXCEEDED = "budget_exceeded"
    DONE = "done"


STOP_STATES = {
    StoppingReason.TARGETS_MET: ControllerState.TARGETS_MET,
    StoppingReason.DIMINISHING_RETURNS: ControllerState.DIMINISHING_RETURNS,
    StoppingReason.MAX_ITERATIONS: ControllerState.MAX_ITERATIONS_REACHED,
    StoppingReason.BUDGET_EXCEEDED: ControllerState.BUDGET_EXCEEDED,
}


class IterationOutcome(BaseModel):
    """Snapshot of an iteration run, complete or partial."""

    history: list[OptimizationIteration] = Field(default_factory=list)
    best_iteration: OptimizationIteration | None = None
    stopping_reason: StoppingReason | None = None
    total_cost: float = 0.0

    @property
    def baseline(self) -> float:
        """Overall score of the original prompt, from the first evaluation."""
        if not self.history:
            return 0.0
        return self.history[0].evaluation.before_score.overall

    @property
    def improved(self) -> bool:
        """Whether any iteration beat the original prompt."""
        return (
            self.best_iteration is not None
            and self.best_iteration.evaluation.after_score.overall > self.baseline
        )


class IterationController:
    """Runs the sequential refine/evaluate loop for one request.

    History, best iteration and cost live on the instance, so a caller can
    still read a partial outcome after the run is cancelled or times out.
    """

    def __init__(
        self,
        evaluator: BeforeAfterEvaluator,
        config: OptimizerConfig,
        progress_callback: Callable[[str], None] | None = None,
        use_case: str | None = None,
    ):
        """
        Initialize the controller.

        Args:
            evaluator: Before/after scoring capability
            config: Optimizer configuration (refiner LLM, per-call timeout)
            progress_callback: Optional callback for progress messages
            use_case: What the prompt is used for, shown to the refiner
        """
        self.evaluator = evaluator
        self.config = config
        self.use_case = use_case
        self._print_progress = progress_callback or (lambda msg: None)

        self.state = ControllerState.INIT
        self.history: list[OptimizationIteration] = []
        self.best_iteration: OptimizationIteration | None = None
        self.stopping_reason: StoppingReason | None = None
        self.total_cost = 0.0

    def outcome(self) -> IterationOutcome:
        """Current snapshot of the run."""
        return IterationOutcome(
            history=list(self.history),
            best_iteration=self.best_iteration,
            stopping_reason=self.stopping_reason,
            total_cost=self.total_cost,
        )

    async def run(self, original_prompt: str, request: OptimizationConfig) -> IterationOutcome:
        """
        Iterate until targets are met, the budget runs out, returns diminish,
        or the iteration cap is reached.

        Args:
            original_prompt: Prompt every iteration is evaluated against
            request: Per-request iteration settings

        Returns:
            Outcome with the full history and the best iteration
        """
        max_iterations = request.max_iterations or DEFAULT_MAX_ITERATIONS
        target_description = (
            request.targets.describe() if request.targets else "general quality improvement"
        )
        current_content = original_prompt
        previous_improvement: float | None = None

        self.state = ControllerState.ITERATING
        self._print_progress(f"Iterating (max {max_iterations}, targets: {target_description})")

        for iteration in range(1, max_iterations + 1):
            try:
                self._check_budget(request)
            except BudgetExceeded as e:
                self._print_progress(f"  Budget exhausted: {e}")
                self._stop(StoppingReason.BUDGET_EXCEEDED)
                break

            new_content = await self._refine(current_content, iteration, target_description)
            evaluation = await self._evaluate(original_prompt, new_content)
            self.total_cost += request.cost_per_iteration

            met = targets_met(request.targets, evaluation.after_score)
            record = OptimizationIteration(
                iteration=iteration,
                content=new_content,
                evaluation=evaluation,
                targets_met=met,
                improvement=evaluation.improvement,
                cost=self.total_cost,
            )
            self.history.append(record)
            self._track_best(record)
            self._report(record)

            if met:
                self._stop(StoppingReason.TARGETS_MET)
                break

            if (
                previous_improvement is not None
                and abs(evaluation.improvement - previous_improvement)
                < request.diminishing_returns_threshold
            ):
                self._stop(StoppingReason.DIMINISHING_RETURNS)
                break

            current_content = new_content
            previous_improvement = evaluation.improvement
            if iteration == max_iterations:
                self._stop(StoppingReason.MAX_ITERATIONS)

        self.state = ControllerState.DONE
        return self.outcome()

    def _check_budget(self, request: OptimizationConfig) -> None:
        if request.budget is None:
            return
        if self.total_cost + request.cost_per_iteration > request.budget + BUDGET_EPSILON:
            raise BudgetExceeded(self.total_cost, request.cost_per_iteration, request.budget)

    def _stop(self, reason: StoppingReason) -> None:
        """Record the stopping reason on the run and on the last iteration."""
        self.stopping_reason = reason
        self.state = STOP_STATES[reason]
        if self.history:
            last = self.history[-1].model_copy(update={"stopping_reason": reason})
            self.history[-1] = last
            if self.best_iteration is not None and self.best_iteration.iteration == last.iteration:
                self.best_iteration = last
        logger.info(f"Iteration loop stopped: {reason.value} after {len(self.history)} iterations")

    def _track_best(self, record: OptimizationIteration) -> None:
        if (
            self.best_iteration is None
            or record.evaluation.after_score.overall
            > self.best_iteration.evaluation.after_score.overall
        ):
            self.best_iteration = record

    def _report(self, record: OptimizationIteration) -> None:
        after = record.evaluation.after_score.overall
        marker = " ✓" if record.targets_met else ""
        self._print_progress(
            f"  Iter {record.iteration}: {after:.2f} ({record.improvement:+.1f}%), "
            f"cost={record.cost:.2f}{marker}"
        )

    def _previous_summary(self) -> str | None:
        if not self.history:
            return None
        last = self.history[-1]
        after = last.evaluation.after_score
        return (
            f"Overall {after.overall:.2f}, response quality {after.response_quality:.2f}, "
            f"structure {after.structure_compliance:.2f}, "
            f"hallucination rate {after.hallucination_rate:.2f}, "
            f"pass rate {after.pass_rate:.2f} ({last.improvement:+.1f}% vs original)"
        )

    async def _refine(self, current_content: str, iteration: int, target_description: str) -> str:
        """
        Generate one improved prompt with the refiner agent.

        Returns the current content unchanged when the refiner fails.
        """
        refiner = create_refiner_agent(
            self.config.refiner_llm,
            current_content,
            iteration,
            target_description,
            self._previous_summary(),
            self.use_case,
        )
        try:
            result = await asyncio.wait_for(
                Runner.run(refiner, f"Refine prompt (iteration {iteration})"),
                timeout=self.config.sample_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Refinement timed out in iteration {iteration} "
                f"after {self.config.sample_timeout_seconds}s"
            )
            return current_content
        except (AgentsException, OpenAIError) as e:
            logger.error(f"Refinement failed in iteration {iteration}: {e}")
            return current_content

        output: RefinedPromptOutput = result.final_output  # type: ignore[assignment]
        improved = output.improved_prompt.strip()
        if not improved:
            logger.warning(f"Refiner returned an empty prompt in iteration {iteration}")
            return current_content
        logger.debug(f"Iteration {iteration} changes: {output.changes_made}")
        return improved

    async def _evaluate(self, original_prompt: str, new_content: str) -> EvaluationResult:
        try:
            return await self.evaluator.evaluate(original_prompt, new_content)
        except EvaluationError as e:
            logger.warning(f"Evaluation failed, using fallback score: {e}")
            return fallback_evaluation()
