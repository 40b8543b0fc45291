"""Heuristic output metrics."""

from prompt_refiner.metrics.heuristics import (
    compute_metrics,
    consistency_score,
    hallucination_rate,
    has_contradiction,
    has_sentence_variety,
    jaccard_similarity,
    structure_score,
    tokenize,
)

__all__ = [
    "compute_metrics",
    "consistency_score",
    "hallucination_rate",
    "has_contradiction",
    "has_sentence_variety",
    "jaccard_similarity",
    "structure_score",
    "tokenize",
]
