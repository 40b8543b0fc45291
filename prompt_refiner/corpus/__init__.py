"""Domain corpora for test inputs and prompt patterns."""

from prompt_refiner.corpus.base import PatternCorpus, TestInputCorpus
from prompt_refiner.corpus.static_corpus import (
    FALLBACK_INSIGHTS,
    StaticCorpus,
    infer_domain,
    infer_use_case,
)

__all__ = [
    "FALLBACK_INSIGHTS",
    "PatternCorpus",
    "StaticCorpus",
    "TestInputCorpus",
    "infer_domain",
    "infer_use_case",
]
