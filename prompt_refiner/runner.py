"""Generic runner for prompt refinement.

This module provides a reusable runner that accepts a generator and configuration
to run the optimization pipeline and save its reports.
"""

import logging
from datetime import datetime
from pathlib import Path

from prompt_refiner.config import OptimizationConfig, OptimizerConfig
from prompt_refiner.connectors import BaseGenerator
from prompt_refiner.optimizer import PromptOptimizer
from prompt_refiner.reports import (
    display_results,
    save_iteration_history,
    save_model_report,
    save_optimization_report,
    save_optimized_prompt,
)
from prompt_refiner.types import OptimizationResult

logger = logging.getLogger(__name__)


class OptimizationRunner:
    """Runner for executing prompt optimization with reporting."""

    def __init__(
        self,
        generator: BaseGenerator,
        config: OptimizerConfig,
        verbose: bool = True,
    ):
        """Initialize the optimization runner.

        Args:
            generator: Text-generation capability shared by all stages
            config: Engine configuration
            verbose: Whether to print progress messages
        """
        self.generator = generator
        self.config = config
        self.results_root = Path(config.output_dir)
        self.last_run_dir: Path | None = None
        self.verbose = verbose
        self.optimizer = PromptOptimizer(generator=generator, config=config)

    async def run(
        self,
        prompt: str,
        request: OptimizationConfig | None = None,
        compare_models: bool = False,
    ) -> OptimizationResult:
        """Run the optimization pipeline with reporting.

        Args:
            prompt: Prompt to optimize
            request: Per-request iteration settings (single-shot if None)
            compare_models: Also sample the configured models with both prompts

        Returns:
            OptimizationResult with the optimized prompt and its history
        """
        request = request or OptimizationConfig()
        if self.verbose:
            self._print_header(prompt, request)

        result = await self.optimizer.optimize(prompt, request)

        run_output_dir = self._prepare_run_directory()
        self.last_run_dir = run_output_dir

        if self.verbose:
            display_results(result)

        # Save all final results
        await save_optimized_prompt(result, output_dir=str(run_output_dir))
        await save_optimization_report(result, output_dir=str(run_output_dir))
        await save_iteration_history(result, output_dir=str(run_output_dir))

        if compare_models:
            report = await self.optimizer.evaluate_with_models(
                result.original_content, result.optimized_content
            )
            await save_model_report(report, output_dir=str(run_output_dir))

        logger.info(f"Run finished, reports in {run_output_dir}")
        return result

    def _print_header(self, prompt: str, request: OptimizationConfig) -> None:
        """Print optimization header."""
        print("=" * 70)
        print("PROMPT REFINEMENT PIPELINE")
        print("=" * 70)
        print()
        print(f"Prompt: {len(prompt)} characters, {len(prompt.splitlines())} lines")
        print(f"Mode: {'iterative' if request.is_iterative else 'single-shot'}")
        print()
        print("Configuration:")
        if request.is_iterative:
            print(f"  Max iterations: {request.max_iterations or 'default'}")
            print(f"  Budget: {request.budget if request.budget is not None else 'unlimited'}")
            if request.targets is not None:
                print(f"  Targets: {request.targets.describe()}")
        else:
            print(f"  Exemplar variants: {self.config.exemplar_count}")
            print(f"  Diversity variants: {self.config.diversity_count}")
            print(f"  Structural techniques: {self.config.structural_technique_limit}")
            print(f"  Test inputs: {self.config.max_test_inputs}")
        print("  Models:")
        print(f"    Generator: {self.config.generator_llm.model}")
        print(f"    Refiner: {self.config.refiner_llm.model}")
        print(f"    Judge: {self.config.judge_llm.model}")
        print(f"    Simulator: {self.config.simulator_llm.model}")
        if self.config.parallel_execution:
            print("  Parallel execution: enabled")
        else:
            print("  Parallel execution: disabled")
        print()
        print("Starting optimization...")
        print()

    def _prepare_run_directory(self) -> Path:
        """Create and return run-specific output directory."""
        folder_name = datetime.now().strftime("run-%Y%m%d-%H%M%S")
        run_path = self.results_root / folder_name
        run_path.mkdir(parents=True, exist_ok=True)
        return run_path
