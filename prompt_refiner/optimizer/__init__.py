"""Optimization pipeline components."""

from prompt_refiner.optimizer.orchestrator import OptimizationRun, PromptOptimizer

__all__ = ["OptimizationRun", "PromptOptimizer"]
