"""Data types and models for prompt refinement."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class Technique(str, Enum):
    """How a prompt candidate was produced."""

    EXEMPLAR = "exemplar"
    DIVERSITY = "diversity"
    STRUCTURAL = "structural"
    RL = "rl"
    HYBRID = "hybrid"


class StoppingReason(str, Enum):
    """Why the iteration loop halted."""

    TARGETS_MET = "targets_met"
    DIMINISHING_RETURNS = "diminishing_returns"
    MAX_ITERATIONS = "max_iterations"
    BUDGET_EXCEEDED = "budget_exceeded"


class TestCaseResult(BaseModel):
    """Result of running one test input through a prompt."""

    __test__ = False

    input: str = Field(description="Test input sent to the model")
    before_output: str = Field(default="", description="Response under the original prompt")
    after_output: str = Field(default="", description="Response under the candidate prompt")
    score: float = Field(ge=0.0, le=1.0, description="Judge score for the response")
    passed: bool = Field(description="Whether the score clears the pass threshold")


class CandidateMetadata(BaseModel):
    """Provenance of a prompt candidate."""

    generation: int = Field(default=1, ge=1, description="Generation the candidate belongs to")
    parent_id: str | None = Field(default=None, description="Candidate this one was derived from")
    technique: Technique = Field(description="Generation technique")
    reasoning: str = Field(default="", description="Why the variant should perform better")


class PromptCandidate(BaseModel):
    """A proposed prompt variant and its scores."""

    id: str = Field(frozen=True, description="Unique identifier")
    prompt: str = Field(frozen=True, description="Candidate prompt text")
    score: float = Field(default=0.0, ge=0.0, le=1.0, description="Mean judge score")
    diversity: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Dissimilarity from sibling candidates"
    )
    test_results: list[TestCaseResult] = Field(default_factory=list)
    metadata: CandidateMetadata


class EvaluationMetrics(BaseModel):
    """Heuristic metrics derived from a set of sampled outputs."""

    hallucination_rate: float = Field(ge=0.0, le=1.0)
    structure_score: float = Field(ge=0.0, le=1.0)
    consistency_score: float = Field(ge=0.0, le=1.0)
    total_samples: int = Field(ge=0)


class OptimizationTargets(BaseModel):
    """Quality thresholds a run tries to reach. Unset fields are unconstrained."""

    overall: float | None = Field(default=None, ge=0.0, le=1.0)
    response_quality: float | None = Field(default=None, ge=0.0, le=1.0)
    structure_compliance: float | None = Field(default=None, ge=0.0, le=1.0)
    hallucination_rate: float | None = Field(
        default=None, ge=0.0, le=1.0, description="Maximum acceptable rate (lower is better)"
    )
    pass_rate: float | None = Field(default=None, ge=0.0, le=1.0)

    def describe(self) -> str:
        """Human-readable summary used in refinement instructions."""
        parts = []
        if self.overall is not None:
            parts.append(f"overall score >= {self.overall:.2f}")
        if self.response_quality is not None:
            parts.append(f"response quality >= {self.response_quality:.2f}")
        if self.structure_compliance is not None:
            parts.append(f"structure compliance >= {self.structure_compliance:.2f}")
        if self.hallucination_rate is not None:
            parts.append(f"hallucination rate <= {self.hallucination_rate:.2f}")
        if self.pass_rate is not None:
            parts.append(f"pass rate >= {self.pass_rate:.2f}")
        return ", ".join(parts) if parts else "general quality improvement"


class EvaluationScore(BaseModel):
    """Measured quality of one prompt, same dimensions as OptimizationTargets."""

    overall: float = Field(default=0.0, ge=0.0, le=1.0)
    response_quality: float = Field(default=0.0, ge=0.0, le=1.0)
    structure_compliance: float = Field(default=0.0, ge=0.0, le=1.0)
    hallucination_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    pass_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class TestRunMetrics(BaseModel):
    """Aggregate counters for an evaluation run."""

    __test__ = False

    total_tests: int = 0
    passed_tests: int = 0
    average_improvement: float = 0.0
    execution_time: float = Field(default=0.0, description="Seconds spent evaluating")


class EvaluationResult(BaseModel):
    """Before/after comparison of an original and an optimized prompt."""

    before_score: EvaluationScore
    after_score: EvaluationScore
    improvement: float = Field(description="Relative change of overall score, in percent")
    test_cases: list[TestCaseResult] = Field(default_factory=list)
    metrics: TestRunMetrics = Field(default_factory=TestRunMetrics)
    timestamp: datetime = Field(default_factory=datetime.now)


class OptimizationIteration(BaseModel):
    """One pass of the iteration loop."""

    iteration: int = Field(ge=1)
    content: str = Field(description="Prompt produced in this iteration")
    evaluation: EvaluationResult
    targets_met: bool
    improvement: float = Field(description="Signed improvement percentage")
    cost: float = Field(description="Cumulative cost including this iteration")
    timestamp: datetime = Field(default_factory=datetime.now)
    stopping_reason: StoppingReason | None = None


class OptimizationChange(BaseModel):
    """A single change between original and optimized prompt."""

    type: Literal["addition", "deletion", "modification"]
    line: int = Field(default=1, ge=1, description="1-based line in the original prompt")
    original: str | None = None
    optimized: str | None = None
    reason: str


class PatternInsights(BaseModel):
    """Successful prompt patterns observed for a domain."""

    common_patterns: list[str] = Field(default_factory=list)
    successful_prompts: list[str] = Field(default_factory=list)
    failure_indicators: list[str] = Field(default_factory=list)
    recommended_structure: str = ""


class ModelEvaluationResult(BaseModel):
    """Heuristic metrics of one model's sampled outputs for one prompt."""

    model: str
    hallucination_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    structure_score: float = Field(default=0.0, ge=0.0, le=1.0)
    consistency_score: float = Field(default=0.0, ge=0.0, le=1.0)
    total_samples: int = Field(default=0, ge=0)
    responses: list[str] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def failed(cls, model: str, error: str) -> "ModelEvaluationResult":
        """Zero-valued result for a model whose sampling failed."""
        return cls(model=model, responses=[error], error=error)


class ModelComparison(BaseModel):
    """Per-model results for the original and optimized prompts."""

    original_results: list[ModelEvaluationResult]
    optimized_results: list[ModelEvaluationResult]
    improvements: dict[str, float] = Field(default_factory=dict)
    overall_improvement: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.now)


class ModelEvaluationReport(EvaluationResult):
    """An evaluation result extended with per-model heuristic metrics."""

    model_comparison: ModelComparison | None = None
    hallucination_rates: dict[str, float] = Field(default_factory=dict)
    structure_scores: dict[str, float] = Field(default_factory=dict)
    consistency_scores: dict[str, float] = Field(default_factory=dict)


class OptimizationResult(BaseModel):
    """Final result of an optimization request."""

    original_content: str
    optimized_content: str
    explanation: str
    changes: list[OptimizationChange] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    mode: Literal["single_shot", "iterative", "fast"] = "single_shot"
    iteration_history: list[OptimizationIteration] | None = None
    stopping_reason: StoppingReason | None = None
    total_cost: float = 0.0
    best_candidate: PromptCandidate | None = None
    insights: PatternInsights | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
