"""Configuration for the prompt refiner with per-role LLM settings."""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from prompt_refiner.types import OptimizationTargets

logger = logging.getLogger(__name__)

DEFAULT_STRUCTURAL_TECHNIQUES = [
    "Add clear role definition and context",
    "Include specific format requirements",
    "Provide examples and demonstrations",
    "Add constraint and boundary specification",
    "Include step-by-step instructions",
]


class ModelName(str, Enum):
    """Model names accepted in configuration."""

    CLAUDE_HAIKU = "claude-3-haiku"
    CLAUDE_SONNET = "claude-3-sonnet"
    GPT_4 = "gpt-4"
    GPT_4O = "gpt-4o"
    GPT_4O_MINI = "gpt-4o-mini"
    GEMINI_FLASH = "gemini-flash"


class ModelSpec(BaseModel):
    """Provider-side identity of a configured model."""

    provider: str
    model_id: str


MODEL_REGISTRY: dict[ModelName, ModelSpec] = {
    ModelName.CLAUDE_HAIKU: ModelSpec(provider="anthropic", model_id="claude-3-haiku-20240307"),
    ModelName.CLAUDE_SONNET: ModelSpec(
        provider="anthropic", model_id="claude-3-5-sonnet-20240620"
    ),
    ModelName.GPT_4: ModelSpec(provider="openai", model_id="gpt-4"),
    ModelName.GPT_4O: ModelSpec(provider="openai", model_id="gpt-4o"),
    ModelName.GPT_4O_MINI: ModelSpec(provider="openai", model_id="gpt-4o-mini"),
    ModelName.GEMINI_FLASH: ModelSpec(provider="google", model_id="gemini-2.5-flash"),
}


def resolve_model(name: ModelName | str) -> str:
    """Map a configured model name to the provider model id.

    Raises:
        ValueError: If the name is not a known ModelName
    """
    return MODEL_REGISTRY[ModelName(name)].model_id


class LLMConfig(BaseModel):
    """Configuration for a single LLM role."""

    model: str = Field(description="Provider model id (e.g., 'gpt-4o', 'gpt-4o-mini')")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=1000, gt=0, description="Maximum tokens to generate")


class OptimizationConfig(BaseModel):
    """Per-request settings controlling the iteration loop.

    Leaving both ``targets`` and ``max_iterations`` unset selects the
    single-shot candidate pipeline instead of the iteration loop.
    """

    max_iterations: int | None = Field(default=None, ge=1, description="Iteration cap")
    budget: float | None = Field(default=None, ge=0.0, description="Spending cap for the run")
    cost_per_iteration: float = Field(default=0.1, ge=0.0, description="Cost of one iteration")
    targets: OptimizationTargets | None = Field(default=None, description="Quality thresholds")
    diminishing_returns_threshold: float = Field(
        default=0.02, ge=0.0, description="Minimum change in improvement between iterations"
    )

    @property
    def is_iterative(self) -> bool:
        """Whether this request runs the iteration loop."""
        return self.targets is not None or self.max_iterations is not None


class OptimizerConfig(BaseModel):
    """Engine-wide configuration shared by all requests."""

    # Candidate generation
    domain: str | None = Field(
        default=None, description="Prompt domain (inferred from the prompt if None)"
    )
    exemplar_count: int = Field(default=3, ge=1, description="Variants from exemplar guidance")
    diversity_count: int = Field(default=3, ge=1, description="Variants from diversity rewrites")
    structural_techniques: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STRUCTURAL_TECHNIQUES),
        description="Named structural techniques, in priority order",
    )
    structural_technique_limit: int = Field(
        default=2, ge=0, description="How many structural techniques to apply"
    )
    reinforcement_learning: bool = Field(
        default=False, description="Refine the selected candidate from its test results"
    )

    # Scoring
    max_test_inputs: int = Field(default=10, ge=1, description="Upper bound on test inputs")
    pass_threshold: float = Field(default=0.7, ge=0.0, le=1.0, description="Judge pass mark")
    score_weight: float = Field(default=0.8, ge=0.0, le=1.0, description="Selection weight")
    diversity_weight: float = Field(default=0.2, ge=0.0, le=1.0, description="Selection weight")

    # Model sampling
    models: list[ModelName] = Field(
        default_factory=lambda: [ModelName.CLAUDE_HAIKU, ModelName.GPT_4O_MINI],
        description="Models used by evaluate_with_models",
    )
    sample_size: int = Field(default=3, ge=1, description="Samples drawn per model")
    sample_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-call timeout")
    request_timeout_seconds: float = Field(default=60.0, gt=0, description="Whole-request timeout")
    parallel_execution: bool = Field(
        default=True,
        description="Evaluate models concurrently (True) or one at a time (False)",
    )

    # LLM configuration per role
    generator_llm: LLMConfig = Field(
        default=LLMConfig(model="gpt-4o", temperature=0.7, max_tokens=1000),
        description="LLM for candidate generation",
    )
    refiner_llm: LLMConfig = Field(
        default=LLMConfig(model="gpt-4o", temperature=0.5, max_tokens=800),
        description="LLM for per-iteration refinement",
    )
    judge_llm: LLMConfig = Field(
        default=LLMConfig(model="gpt-4o-mini", temperature=0.0, max_tokens=100),
        description="LLM for scoring (zero temperature for consistency)",
    )
    simulator_llm: LLMConfig = Field(
        default=LLMConfig(model="gpt-4o-mini", temperature=0.1, max_tokens=300),
        description="LLM that plays the configured assistant",
    )
    explainer_llm: LLMConfig = Field(
        default=LLMConfig(model="gpt-4o-mini", temperature=0.3, max_tokens=300),
        description="LLM for explanations and the fast path",
    )

    # Progress reporting
    verbose: bool = Field(default=False, description="Print progress updates")

    # API configuration
    openai_api_key: str | None = Field(
        default=None, description="OpenAI API key (if None, uses OPENAI_API_KEY env var)"
    )
    base_url: str | None = Field(
        default=None, description="OpenAI-compatible endpoint (if None, uses OPENAI_BASE_URL)"
    )
    output_dir: Path = Field(
        default=Path("refiner_results"), description="Where the runner writes reports"
    )


def setup_logging(level: str | None = None) -> None:
    """Set up logging configuration."""
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_config(config_path: str | Path | None = None) -> OptimizerConfig:
    """Load optimizer configuration from a YAML file and environment variables.

    Args:
        config_path: Path to a YAML file whose keys mirror OptimizerConfig.
            When None, defaults plus environment overrides are used.

    Returns:
        Validated OptimizerConfig

    Raises:
        FileNotFoundError: If config_path is given but does not exist
    """
    load_dotenv()

    data: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {path}")

    if "openai_api_key" not in data and os.getenv("OPENAI_API_KEY"):
        data["openai_api_key"] = os.getenv("OPENAI_API_KEY")
    if "base_url" not in data and os.getenv("OPENAI_BASE_URL"):
        data["base_url"] = os.getenv("OPENAI_BASE_URL")

    return OptimizerConfig(**data)
