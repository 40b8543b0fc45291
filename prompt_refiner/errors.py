"""Exception types raised by the prompt refinement engine."""


class PromptRefinerError(Exception):
    """Base class for all engine errors."""


class GenerationError(PromptRefinerError):
    """Text generation failed at the provider or timed out."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class EvaluationError(PromptRefinerError):
    """The before/after scoring capability could not produce a result."""


class ParseError(PromptRefinerError):
    """A generation response did not match the expected block format."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class BudgetExceeded(PromptRefinerError):
    """Raised when the next iteration would push spending past the budget.

    This is a normal stop condition for the iteration loop, not a failure.
    """

    def __init__(self, total_cost: float, cost_per_iteration: float, budget: float):
        super().__init__(
            f"Next iteration would cost {total_cost + cost_per_iteration:.4f} "
            f"(budget {budget:.4f})"
        )
        self.total_cost = total_cost
        self.cost_per_iteration = cost_per_iteration
        self.budget = budget
