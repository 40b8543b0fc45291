"""Corpus interfaces consumed by candidate generation and scoring."""

from abc import ABC, abstractmethod

from prompt_refiner.types import PatternInsights


class TestInputCorpus(ABC):
    """Source of realistic user inputs for a domain."""

    __test__ = False

    @abstractmethod
    async def sample_inputs(self, domain: str, count: int) -> list[str]:
        """Return up to ``count`` test inputs for the domain."""
        ...


class PatternCorpus(ABC):
    """Source of previously successful prompt patterns for a domain."""

    @abstractmethod
    async def patterns(self, domain: str) -> PatternInsights:
        """Return pattern insights observed for the domain."""
        ...
