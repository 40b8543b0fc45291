"""Test the built-in corpus and domain inference."""

import pytest
import yaml

from prompt_refiner.corpus import StaticCorpus, infer_domain, infer_use_case
from prompt_refiner.corpus.static_corpus import extract_patterns


@pytest.mark.parametrize(
    "content,file_name,domain",
    [
        ("Review my code for bugs.", "", "software-development"),
        ("Write a blog post.", "", "content-creation"),
        ("Analyze the quarterly numbers.", "", "data-analysis"),
        ("Reply to the customer politely.", "", "customer-service"),
        ("Answer questions.", "dev_prompt.md", "software-development"),
        ("Answer questions.", "", "general"),
    ],
)
def test_infer_domain(content, file_name, domain):
    assert infer_domain(content, file_name) == domain


def test_infer_use_case():
    assert infer_use_case("You are a helpful assistant.") == "assistant"
    assert infer_use_case("Summarize the report.") == "summarization"
    assert infer_use_case("Translate to French.") == "translation"
    assert infer_use_case("Sort numbers.") == "general"


def test_extract_patterns_orders_by_frequency():
    messages = [
        "Explain recursion.",
        "Explain closures with an example.",
        "How to profile code?",
    ]

    assert extract_patterns(messages) == [
        "explanation-requests",
        "example-requests",
        "how-to-questions",
    ]


@pytest.mark.asyncio
async def test_sample_inputs_fall_back_to_general():
    corpus = StaticCorpus({"general": ["a", "b", "c"], "legal": ["d"]})

    assert await corpus.sample_inputs("legal", 5) == ["d"]
    assert await corpus.sample_inputs("unknown", 2) == ["a", "b"]


@pytest.mark.asyncio
async def test_patterns_recommend_structure_for_top_pattern():
    corpus = StaticCorpus({"general": ["How to cook rice?", "How to bake bread?"]})

    insights = await corpus.patterns("general")

    assert insights.common_patterns == ["how-to-questions"]
    assert insights.recommended_structure.startswith('Structure: "How to')
    assert insights.successful_prompts == ["How to cook rice?", "How to bake bread?"]


@pytest.mark.asyncio
async def test_from_yaml(tmp_path):
    corpus_file = tmp_path / "corpus.yaml"
    corpus_file.write_text(yaml.safe_dump({"education": ["Explain gravity."]}))

    corpus = StaticCorpus.from_yaml(corpus_file)

    assert await corpus.sample_inputs("education", 3) == ["Explain gravity."]


def test_from_yaml_rejects_non_mapping(tmp_path):
    corpus_file = tmp_path / "corpus.yaml"
    corpus_file.write_text(yaml.safe_dump(["not", "a", "mapping"]))

    with pytest.raises(ValueError):
        StaticCorpus.from_yaml(corpus_file)
