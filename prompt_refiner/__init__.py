"""
Prompt Refiner - LLM-driven prompt optimization with iterative refinement.

This package improves a user-supplied prompt in one of two modes:
1. Single-shot: generate candidate variants (exemplar, diversity, structural),
   score them on domain test inputs with an LLM judge, select the best
2. Iterative: refine, evaluate before/after, and stop on targets met,
   diminishing returns, max iterations, or budget exhausted

Public API:
- BaseGenerator: Abstract base class for implementing custom text generators
- OpenAIGenerator: Built-in generator for OpenAI-compatible endpoints
- OptimizerConfig: Engine-wide configuration
- OptimizationConfig: Per-request iteration settings
- PromptOptimizer: Optimization engine (optimize, evaluate_with_models)
- OptimizationRun: Per-request handle for recovering a cancelled run
- OptimizationRunner: Runner that executes optimization and saves reports
"""

from prompt_refiner.config import OptimizationConfig, OptimizerConfig, load_config
from prompt_refiner.connectors import BaseGenerator, OpenAIGenerator
from prompt_refiner.optimizer import OptimizationRun, PromptOptimizer
from prompt_refiner.runner import OptimizationRunner
from prompt_refiner.types import OptimizationResult, OptimizationTargets

__all__ = [
    "BaseGenerator",
    "OpenAIGenerator",
    "OptimizationConfig",
    "OptimizationResult",
    "OptimizationRun",
    "OptimizationRunner",
    "OptimizationTargets",
    "OptimizerConfig",
    "PromptOptimizer",
    "load_config",
]
