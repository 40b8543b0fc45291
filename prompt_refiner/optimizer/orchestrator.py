"""Main prompt optimizer orchestrator."""

import asyncio
import logging
import os

from prompt_refiner.agents import configure_agent_client
from prompt_refiner.config import ModelName, OptimizationConfig, OptimizerConfig
from prompt_refiner.connectors import BaseGenerator
from prompt_refiner.corpus import (
    PatternCorpus,
    StaticCorpus,
    TestInputCorpus,
    infer_domain,
    infer_use_case,
)
from prompt_refiner.errors import EvaluationError
from prompt_refiner.optimizer.assembler import ResultAssembler
from prompt_refiner.optimizer.candidate_generator import CandidateGenerator
from prompt_refiner.optimizer.controller import IterationController
from prompt_refiner.optimizer.evaluator import (
    BeforeAfterEvaluator,
    SampledEvaluator,
    fallback_evaluation,
)
from prompt_refiner.optimizer.fallback import fast_optimize
from prompt_refiner.optimizer.judge import AgentQualityJudge, QualityJudge
from prompt_refiner.optimizer.model_evaluation import ModelBenchmark
from prompt_refiner.optimizer.sampler import ResponseSampler
from prompt_refiner.optimizer.selector import CandidateScorer, select_best
from prompt_refiner.types import (
    ModelEvaluationReport,
    OptimizationResult,
    PromptCandidate,
)

logger = logging.getLogger(__name__)

PARTIAL_EXPLANATION = "Best iteration found before the run was interrupted."


class OptimizationRun:
    """Per-request state needed to recover a result from an interrupted run.

    Pass one to ``PromptOptimizer.optimize`` to keep a handle on the run, then
    call ``PromptOptimizer.partial_result`` with it after a cancellation.
    """

    def __init__(self):
        self.original_prompt: str | None = None
        self.controller: IterationController | None = None


class PromptOptimizer:
    """Entry point for single-shot and iterative prompt optimization."""

    def __init__(
        self,
        generator: BaseGenerator,
        config: OptimizerConfig | None = None,
        judge: QualityJudge | None = None,
        evaluator: BeforeAfterEvaluator | None = None,
        test_corpus: TestInputCorpus | None = None,
        pattern_corpus: PatternCorpus | None = None,
    ):
        """
        Initialize the optimizer.

        Args:
            generator: Shared text-generation capability
            config: Engine configuration (defaults if None)
            judge: Quality judge (LLM-as-judge agent if None)
            evaluator: Before/after evaluator (sampled evaluator for the domain if None)
            test_corpus: Test-input corpus (built-in static corpus if None)
            pattern_corpus: Pattern corpus (built-in static corpus if None)
        """
        self.generator = generator
        self.config = config or OptimizerConfig()

        # Agents SDK reads the key from the environment
        if self.config.openai_api_key:
            os.environ["OPENAI_API_KEY"] = self.config.openai_api_key
            logger.info("OpenAI API key set from config")
        configure_agent_client(self.config.openai_api_key, self.config.base_url)

        static_corpus = StaticCorpus()
        self.test_corpus = test_corpus or static_corpus
        self.pattern_corpus = pattern_corpus or static_corpus
        self.judge = judge or AgentQualityJudge(
            self.config.judge_llm, self.config.sample_timeout_seconds
        )
        self._evaluator = evaluator

        self.sampler = ResponseSampler(generator, self.config)
        self.candidate_generator = CandidateGenerator(
            generator, self.pattern_corpus, self.config, self._print_progress
        )
        self.scorer = CandidateScorer(
            self.sampler, self.judge, self.test_corpus, self.config, self._print_progress
        )
        self.benchmark = ModelBenchmark(self.sampler, self.config, self._print_progress)
        self.assembler = ResultAssembler(generator, self.config.explainer_llm)

    def resolve_domain(self, original_prompt: str) -> str:
        return self.config.domain or infer_domain(original_prompt)

    def resolve_use_case(self, original_prompt: str) -> str:
        return infer_use_case(original_prompt)

    def evaluator_for(self, domain: str) -> BeforeAfterEvaluator:
        """The injected evaluator, or a sampled evaluator for the domain."""
        if self._evaluator is not None:
            return self._evaluator
        return SampledEvaluator(self.sampler, self.judge, self.test_corpus, self.config, domain)

    async def optimize(
        self,
        original_prompt: str,
        config: OptimizationConfig | None = None,
        run: OptimizationRun | None = None,
    ) -> OptimizationResult:
        """
        Optimize a prompt within the request timeout.

        Runs the iteration loop when the request sets targets or max_iterations,
        otherwise the single-shot candidate pipeline. On timeout the best
        iteration so far is returned, or the fast path runs when there is none.

        Args:
            original_prompt: Prompt to optimize
            config: Per-request iteration settings
            run: Optional handle the caller keeps to recover a partial result
                after cancelling this call

        Returns:
            Optimization result (never raises for provider failures or timeouts)
        """
        request = config or OptimizationConfig()
        run = run or OptimizationRun()
        run.original_prompt = original_prompt
        run.controller = None

        try:
            return await asyncio.wait_for(
                self._optimize(original_prompt, request, run),
                timeout=self.config.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Optimization timed out after {self.config.request_timeout_seconds}s, "
                "using best result so far"
            )
            partial = self.partial_result(run)
            if partial is not None:
                return partial
            self._print_progress("No iterations completed, running fast optimization...")
            return await fast_optimize(self.generator, self.config.explainer_llm, original_prompt)

    async def _optimize(
        self, original_prompt: str, request: OptimizationConfig, run: OptimizationRun
    ) -> OptimizationResult:
        domain = self.resolve_domain(original_prompt)
        self._print_progress("=== STARTING PROMPT OPTIMIZATION ===")
        self._print_progress(f"Domain: {domain}")

        if request.is_iterative:
            return await self._optimize_iterative(original_prompt, request, domain, run)
        return await self._optimize_single_shot(original_prompt, domain)

    async def _optimize_iterative(
        self,
        original_prompt: str,
        request: OptimizationConfig,
        domain: str,
        run: OptimizationRun,
    ) -> OptimizationResult:
        use_case = self.resolve_use_case(original_prompt)
        self._print_progress(f"Use case: {use_case}")
        controller = IterationController(
            self.evaluator_for(domain), self.config, self._print_progress, use_case
        )
        run.controller = controller
        outcome = await controller.run(original_prompt, request)
        self._print_progress("\n=== OPTIMIZATION COMPLETE ===")
        return await self.assembler.from_iterations(original_prompt, outcome)

    async def _optimize_single_shot(self, original_prompt: str, domain: str) -> OptimizationResult:
        candidates = await self.candidate_generator.generate(original_prompt, domain)
        scored = await self.scorer.evaluate(candidates, domain)
        best = select_best(scored, self.config.score_weight, self.config.diversity_weight)

        if best is None:
            self._print_progress("No candidates survived, keeping the original prompt")
        elif self.config.reinforcement_learning:
            best = await self._reinforcement_step(best, domain)

        insights = await self.candidate_generator.load_insights(domain)
        self._print_progress("\n=== OPTIMIZATION COMPLETE ===")
        return await self.assembler.from_candidate(original_prompt, best, insights)

    async def _reinforcement_step(self, best: PromptCandidate, domain: str) -> PromptCandidate:
        """Refine the selected candidate and keep the refinement only if it scores higher."""
        refined = await self.candidate_generator.reinforce(best)
        if refined is None:
            return best
        refined = await self.scorer.score_candidate(refined, domain)
        if refined.score > best.score:
            self._print_progress(
                f"RL refinement improved score: {best.score:.2f} → {refined.score:.2f}"
            )
            return refined
        return best

    def partial_result(self, run: OptimizationRun) -> OptimizationResult | None:
        """
        Best-effort result from an interrupted iterative run.

        Args:
            run: Handle of the timed-out or cancelled request

        Returns:
            Result built from the iterations recorded so far, or None when no
            iteration completed
        """
        if run.controller is None or run.original_prompt is None:
            return None
        outcome = run.controller.outcome()
        if not outcome.history:
            return None
        return self.assembler.build_iterative(run.original_prompt, outcome, PARTIAL_EXPLANATION)

    async def evaluate_with_models(
        self,
        original: str,
        optimized: str,
        models: list[ModelName] | None = None,
    ) -> ModelEvaluationReport:
        """
        Compare two prompts with heuristic metrics across models.

        Args:
            original: Original prompt
            optimized: Optimized prompt
            models: Models to sample (configured models if None)

        Returns:
            Before/after evaluation with per-model metric maps for the optimized prompt
        """
        selected = models or self.config.models
        evaluator = self.evaluator_for(self.resolve_domain(original))

        comparison = await self.benchmark.compare(original, optimized, selected)
        try:
            evaluation = await evaluator.evaluate(original, optimized)
        except EvaluationError as e:
            logger.warning(f"Before/after evaluation failed, using fallback score: {e}")
            evaluation = fallback_evaluation()

        results = comparison.optimized_results
        return ModelEvaluationReport(
            **evaluation.model_dump(),
            model_comparison=comparison,
            hallucination_rates={r.model: r.hallucination_rate for r in results},
            structure_scores={r.model: r.structure_score for r in results},
            consistency_scores={r.model: r.consistency_score for r in results},
        )

    def _print_progress(self, message: str, end: str = "\n") -> None:
        """Print progress if verbose mode is enabled."""
        if self.config.verbose:
            print(message, end=end, flush=True)
