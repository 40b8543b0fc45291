"""Heuristic quality metrics computed from sampled model outputs.

All functions are pure and order-independent over the sample sequence, so the
same sample set always yields the same metrics.
"""

import re
from collections.abc import Iterable, Sequence
from itertools import combinations

from prompt_refiner.types import EvaluationMetrics

UNCERTAINTY_PATTERN = re.compile(
    r"\b(?:maybe|probably|might|could be|i think|possibly)\b", re.IGNORECASE
)
FACTUAL_CLAIM_PATTERN = re.compile(
    r"\b(?:definitely|always|never|must|absolutely)\b", re.IGNORECASE
)
SPECIFIC_DETAIL_PATTERN = re.compile(r"\d{2}/\d{2}/\d{4}|\$\d+|\d+%|\d{4}")

BULLET_PATTERN = re.compile(r"^\s*[-*•]\s+\S", re.MULTILINE)
HEADING_PATTERN = re.compile(r"^#+\s+\w+", re.MULTILINE)
CODE_BLOCK_PATTERN = re.compile(r"```[\s\S]*?```")
PARAGRAPH_BREAK_PATTERN = re.compile(r"\n\s*\n")
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]*")
COMPLEX_OPENER_PATTERN = re.compile(r"^(?:if|when|while|because|although)\b", re.IGNORECASE)

# (positive, negative) term pairs used for contradiction detection
ANTONYM_PAIRS = [
    ("always", "never"),
    ("must", "must not"),
    ("is", "is not"),
    ("can", "cannot"),
    ("will", "will not"),
    ("should", "should not"),
]

HALLUCINATION_CLAIM_WEIGHT = 0.2
HALLUCINATION_CONTRADICTION_WEIGHT = 0.3
HALLUCINATION_DETAIL_WEIGHT = 0.2
STRUCTURE_INDICATOR_WEIGHT = 0.2
MIN_SHARED_TOKENS = 2


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _term_pattern(term: str, negated_form: str | None = None) -> re.Pattern[str]:
    """Word-bounded pattern for a term, excluding its negated form if given."""
    escaped = re.escape(term).replace(r"\ ", r"\s+")
    if negated_form is not None and negated_form.startswith(term + " "):
        suffix = re.escape(negated_form[len(term) + 1 :])
        return re.compile(rf"\b{escaped}\b(?!\s+{suffix}\b)")
    return re.compile(rf"\b{escaped}\b")


_ANTONYM_PATTERNS = [
    (_term_pattern(positive, negative), _term_pattern(negative))
    for positive, negative in ANTONYM_PAIRS
]


def tokenize(text: str) -> set[str]:
    """Lower-cased whitespace token set."""
    return set(text.lower().split())


def jaccard_similarity(first: Iterable[str], second: Iterable[str]) -> float:
    """Jaccard similarity of two token collections (1.0 when both are empty)."""
    set1, set2 = set(first), set(second)
    union = set1 | set2
    if not union:
        return 1.0
    return len(set1 & set2) / len(union)


def split_sentences(text: str) -> list[str]:
    """Split text into trimmed sentences, keeping terminal punctuation."""
    sentences = (match.group(0).strip() for match in SENTENCE_PATTERN.finditer(text))
    return [s for s in sentences if s.strip(".!? ")]


def _sentence_tokens(sentence: str) -> set[str]:
    return set(re.findall(r"[a-z0-9']+", sentence.lower()))


def are_contradictory(first: str, second: str) -> bool:
    """Check two sentences against the antonym table.

    A pair is contradictory when one sentence uses the positive term, the other
    the negative term, and they share more than two tokens (same topic).
    """
    first_lower, second_lower = first.lower(), second.lower()
    for positive, negative in _ANTONYM_PATTERNS:
        opposed = (positive.search(first_lower) and negative.search(second_lower)) or (
            negative.search(first_lower) and positive.search(second_lower)
        )
        if opposed:
            shared = _sentence_tokens(first_lower) & _sentence_tokens(second_lower)
            if len(shared) > MIN_SHARED_TOKENS:
                return True
    return False


def has_contradiction(text: str) -> bool:
    """Whether any pair of sentences in the text contradict each other."""
    sentences = split_sentences(text)
    return any(are_contradictory(a, b) for a, b in combinations(sentences, 2))


def _sentence_type(sentence: str) -> str:
    if sentence.endswith("?"):
        return "question"
    if sentence.endswith("!"):
        return "exclamation"
    if COMPLEX_OPENER_PATTERN.match(sentence):
        return "complex"
    return "simple"


def has_sentence_variety(text: str) -> bool:
    """At least two sentences, varied in both length and type."""
    sentences = split_sentences(text)
    if len(sentences) < 2:
        return False

    lengths = [len(s.rstrip(".!?")) for s in sentences]
    mean_length = sum(lengths) / len(lengths)
    has_length_variety = any(abs(length - mean_length) > mean_length * 0.5 for length in lengths)
    has_type_variety = len({_sentence_type(s) for s in sentences}) > 1
    return has_length_variety and has_type_variety


def structure_indicators(text: str) -> dict[str, bool]:
    """The five structural indicators checked for a single sample."""
    return {
        "paragraphs": len([p for p in PARAGRAPH_BREAK_PATTERN.split(text) if p.strip()]) > 1,
        "bullets": bool(BULLET_PATTERN.search(text)),
        "headings": bool(HEADING_PATTERN.search(text)),
        "code_blocks": bool(CODE_BLOCK_PATTERN.search(text)),
        "sentence_variety": has_sentence_variety(text),
    }


def _hallucination_contribution(text: str) -> float:
    has_uncertainty = bool(UNCERTAINTY_PATTERN.search(text))
    contribution = 0.0
    if has_uncertainty and FACTUAL_CLAIM_PATTERN.search(text):
        contribution += HALLUCINATION_CLAIM_WEIGHT
    if has_contradiction(text):
        contribution += HALLUCINATION_CONTRADICTION_WEIGHT
    if has_uncertainty and SPECIFIC_DETAIL_PATTERN.search(text):
        contribution += HALLUCINATION_DETAIL_WEIGHT
    return contribution


def hallucination_rate(samples: Sequence[str]) -> float:
    """Estimate hallucination risk of a sample set, in [0, 1]."""
    if not samples:
        return 0.0
    total = sum(_hallucination_contribution(sample) for sample in samples)
    return _clamp(total / len(samples))


def structure_score(samples: Sequence[str]) -> float:
    """Average formatting/organisation quality of a sample set, in [0, 1]."""
    if not samples:
        return 0.0
    total = sum(
        STRUCTURE_INDICATOR_WEIGHT * sum(structure_indicators(sample).values())
        for sample in samples
    )
    return _clamp(total / len(samples))


def consistency_score(samples: Sequence[str]) -> float:
    """Mean pairwise Jaccard similarity of the samples (1.0 for fewer than two)."""
    if len(samples) < 2:
        return 1.0
    token_sets = [tokenize(sample) for sample in samples]
    similarities = [jaccard_similarity(a, b) for a, b in combinations(token_sets, 2)]
    return _clamp(sum(similarities) / len(similarities))


def compute_metrics(samples: Sequence[str]) -> EvaluationMetrics:
    """Compute all heuristic metrics for a sample set."""
    return EvaluationMetrics(
        hallucination_rate=hallucination_rate(samples),
        structure_score=structure_score(samples),
        consistency_score=consistency_score(samples),
        total_samples=len(samples),
    )
