"""Built-in conversation corpus and domain inference helpers."""

import logging
from collections import Counter
from pathlib import Path

import yaml

from prompt_refiner.corpus.base import PatternCorpus, TestInputCorpus
from prompt_refiner.types import PatternInsights

logger = logging.getLogger(__name__)

DEFAULT_RECOMMENDED_STRUCTURE = "Use specific, contextual language with clear expectations."
DEFAULT_FAILURE_INDICATORS = ["too vague", "missing context", "unclear intent"]

FALLBACK_INSIGHTS = PatternInsights(
    common_patterns=["how-to-questions", "explanation-requests"],
    successful_prompts=[],
    failure_indicators=[],
    recommended_structure=DEFAULT_RECOMMENDED_STRUCTURE,
)

# Phrase marker -> pattern name, checked against lower-cased user messages
PATTERN_MARKERS = {
    "how to": "how-to-questions",
    "what is": "definition-requests",
    "explain": "explanation-requests",
    "example": "example-requests",
}

RECOMMENDED_STRUCTURES = {
    "how-to-questions": (
        'Structure: "How to [specific task] in [context]? '
        'Please provide [specific format/detail level]."'
    ),
    "definition-requests": (
        'Structure: "What is [concept] in the context of [domain]? '
        'Include [examples/applications]."'
    ),
    "explanation-requests": (
        'Structure: "Explain [topic] by [approach/method]. Focus on [specific aspects]."'
    ),
    "example-requests": (
        'Structure: "Provide [number] examples of [concept] that [criteria]. '
        'Include [details]."'
    ),
}

MAX_COMMON_PATTERNS = 5
MAX_SUCCESSFUL_PROMPTS = 10

DEFAULT_CONVERSATIONS: dict[str, list[str]] = {
    "general": [
        "How do I optimize prompts for better AI responses?",
        "What are the best practices for writing clear instructions?",
        "Explain the difference between weather and climate.",
        "Can you give me an example of a good cover letter opening?",
        "How to plan a week of healthy meals on a budget?",
        "What is the best way to learn a new language as an adult?",
    ],
    "software-development": [
        "How to write a unit test for an async function in Python?",
        "Explain what a race condition is with a short example.",
        "What is dependency injection and when should I use it?",
        "Review this function and suggest how to make it more readable.",
        "How do I structure a REST API for a small inventory service?",
        "Give an example of handling retries with exponential backoff.",
    ],
    "content-creation": [
        "Write a friendly product announcement for a note-taking app.",
        "How to turn a technical blog post into a short newsletter?",
        "Give me three example headlines for an article about remote work.",
        "Explain how to keep a consistent tone across a content series.",
    ],
    "data-analysis": [
        "How to detect outliers in monthly sales data?",
        "What is the difference between correlation and causation?",
        "Explain how to choose the right chart for survey results.",
        "Give an example of a cohort analysis for subscription churn.",
    ],
    "customer-service": [
        "How to respond to a customer whose order arrived damaged?",
        "Explain our refund policy to a frustrated customer.",
        "What is the best way to escalate a billing dispute?",
        "Give an example reply to a customer asking for a discount.",
    ],
    "education": [
        "Explain photosynthesis to a ten year old.",
        "How to teach fractions using everyday objects?",
        "What is the Pythagorean theorem and where is it used?",
        "Give an example quiz question about the water cycle.",
    ],
}


def infer_domain(content: str, file_name: str = "") -> str:
    """Infer the prompt domain from its text and (optionally) its file name."""
    text = content.lower()
    name = file_name.lower()

    if "code" in text or "programming" in text or "dev" in name:
        return "software-development"
    if "write" in text or "content" in text or "writing" in name:
        return "content-creation"
    if "analyze" in text or "data" in text or "analytics" in name:
        return "data-analysis"
    if "customer" in text or "support" in text or "support" in name:
        return "customer-service"
    if "medical" in text or "health" in text or "health" in name:
        return "healthcare"
    if "legal" in text or "law" in text or "legal" in name:
        return "legal"
    if "finance" in text or "financial" in text or "finance" in name:
        return "finance"
    if "education" in text or "teach" in text or "edu" in name:
        return "education"
    return "general"


def infer_use_case(content: str) -> str:
    """Infer what the prompt is used for."""
    text = content.lower()

    if "assistant" in text or "help" in text:
        return "assistant"
    if "analyze" in text or "review" in text:
        return "analysis"
    if "generate" in text or "create" in text:
        return "generation"
    if "summarize" in text or "summary" in text:
        return "summarization"
    if "translate" in text or "translation" in text:
        return "translation"
    if "explain" in text or "teach" in text:
        return "explanation"
    return "general"


def extract_patterns(messages: list[str]) -> list[str]:
    """Most frequent request patterns among user messages, most common first."""
    counts: Counter[str] = Counter()
    for message in messages:
        lower = message.lower()
        for marker, pattern in PATTERN_MARKERS.items():
            if marker in lower:
                counts[pattern] += 1
    return [pattern for pattern, _ in counts.most_common(MAX_COMMON_PATTERNS)]


def recommend_structure(patterns: list[str]) -> str:
    if patterns:
        return RECOMMENDED_STRUCTURES.get(patterns[0], DEFAULT_RECOMMENDED_STRUCTURE)
    return DEFAULT_RECOMMENDED_STRUCTURE


class StaticCorpus(TestInputCorpus, PatternCorpus):
    """In-memory corpus of highly rated user messages, keyed by domain.

    Unknown domains fall back to the ``general`` conversations so the engine
    can run without an external dataset.
    """

    def __init__(self, conversations: dict[str, list[str]] | None = None):
        self.conversations = conversations if conversations is not None else DEFAULT_CONVERSATIONS

    @classmethod
    def from_yaml(cls, path: str | Path) -> "StaticCorpus":
        """Load a corpus from a YAML mapping of domain -> list of messages."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Corpus file must contain a mapping of domains: {path}")
        conversations = {
            str(domain): [str(message) for message in messages]
            for domain, messages in data.items()
        }
        logger.info(f"Loaded corpus with {len(conversations)} domains from {path}")
        return cls(conversations)

    def _messages_for(self, domain: str) -> list[str]:
        if domain in self.conversations:
            return self.conversations[domain]
        logger.debug(f"No corpus entries for domain '{domain}', using general")
        return self.conversations.get("general", [])

    async def sample_inputs(self, domain: str, count: int) -> list[str]:
        return self._messages_for(domain)[:count]

    async def patterns(self, domain: str) -> PatternInsights:
        messages = self._messages_for(domain)
        common_patterns = extract_patterns(messages)
        return PatternInsights(
            common_patterns=common_patterns,
            successful_prompts=messages[:MAX_SUCCESSFUL_PROMPTS],
            failure_indicators=list(DEFAULT_FAILURE_INDICATORS),
            recommended_structure=recommend_structure(common_patterns),
        )
