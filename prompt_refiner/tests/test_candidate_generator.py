"""Test candidate generation techniques and variation parsing."""

import pytest

from prompt_refiner.corpus import FALLBACK_INSIGHTS, StaticCorpus
from prompt_refiner.errors import ParseError
from prompt_refiner.optimizer.candidate_generator import CandidateGenerator, parse_variations
from prompt_refiner.optimizer.sampler import ResponseSampler
from prompt_refiner.optimizer.selector import CandidateScorer, select_best
from prompt_refiner.tests.helpers import BrokenPatternCorpus, DummyGenerator, FailingGenerator
from prompt_refiner.types import CandidateMetadata, PromptCandidate, Technique, TestCaseResult


def test_parse_variations_reads_numbered_blocks():
    text = (
        "VARIATION 1:\nExplain sorting step by step.\n\nREASONING 1:\nAdds structure.\n\n"
        "VARIATION [2]:\nExplain sorting with an example.\n\nREASONING [2]:\nAdds grounding."
    )
    candidates = parse_variations(text, Technique.DIVERSITY)

    assert [c.prompt for c in candidates] == [
        "Explain sorting step by step.",
        "Explain sorting with an example.",
    ]
    assert [c.metadata.reasoning for c in candidates] == ["Adds structure.", "Adds grounding."]
    assert all(c.metadata.technique == Technique.DIVERSITY for c in candidates)
    assert all(c.id.startswith("diversity_") for c in candidates)
    assert len({c.id for c in candidates}) == 2


def test_parse_variations_skips_blocks_without_reasoning():
    text = "VARIATION 1:\nNo reasoning here.\n\nVARIATION 2:\nKept prompt.\nREASONING 2:\nWhy."
    candidates = parse_variations(text, Technique.EXEMPLAR)

    assert [c.prompt for c in candidates] == ["Kept prompt."]


def test_parse_variations_raises_when_nothing_parses():
    with pytest.raises(ParseError) as exc_info:
        parse_variations("Sorry, I cannot help with that.", Technique.EXEMPLAR)
    assert exc_info.value.raw_text == "Sorry, I cannot help with that."


@pytest.mark.asyncio
async def test_generate_combines_all_techniques(minimal_config, dummy_generator, sample_prompt):
    generator = CandidateGenerator(dummy_generator, StaticCorpus(), minimal_config)

    candidates = await generator.generate(sample_prompt, "software-development")

    techniques = [c.metadata.technique for c in candidates]
    assert techniques.count(Technique.EXEMPLAR) == minimal_config.exemplar_count
    assert techniques.count(Technique.DIVERSITY) == minimal_config.diversity_count
    assert techniques.count(Technique.STRUCTURAL) == minimal_config.structural_technique_limit
    assert all(c.score == 0.0 for c in candidates)


@pytest.mark.asyncio
async def test_parallel_and_sequential_generation_match(
    minimal_config, parallel_config, sample_prompt
):
    sequential = await CandidateGenerator(
        DummyGenerator(), StaticCorpus(), minimal_config
    ).generate(sample_prompt, "general")
    parallel = await CandidateGenerator(
        DummyGenerator(), StaticCorpus(), parallel_config
    ).generate(sample_prompt, "general")

    assert [c.prompt for c in sequential] == [c.prompt for c in parallel]


@pytest.mark.asyncio
async def test_exemplar_failure_leaves_other_techniques(minimal_config, sample_prompt):
    """A provider outage in one technique does not stop the others."""
    failing = FailingGenerator(fail_on=("incorporating successful patterns",))
    generator = CandidateGenerator(failing, StaticCorpus(), minimal_config)

    candidates = await generator.generate(sample_prompt, "general")

    techniques = {c.metadata.technique for c in candidates}
    assert Technique.EXEMPLAR not in techniques
    assert techniques == {Technique.DIVERSITY, Technique.STRUCTURAL}
    assert failing.failures == 1

    # Selection still proceeds over the remaining candidates
    assert select_best(candidates) is not None


@pytest.mark.asyncio
async def test_structural_candidates_follow_technique_order(minimal_config, sample_prompt):
    minimal_config.structural_technique_limit = 3
    generator = CandidateGenerator(DummyGenerator(), StaticCorpus(), minimal_config)

    candidates = await generator.structural_candidates(sample_prompt)

    assert len(candidates) == 3
    for candidate, technique in zip(
        candidates, minimal_config.structural_techniques[:3], strict=True
    ):
        assert candidate.metadata.technique == Technique.STRUCTURAL
        assert technique in candidate.metadata.reasoning


@pytest.mark.asyncio
async def test_structural_limit_zero_produces_nothing(minimal_config, sample_prompt):
    minimal_config.structural_technique_limit = 0
    generator = CandidateGenerator(DummyGenerator(), StaticCorpus(), minimal_config)

    assert await generator.structural_candidates(sample_prompt) == []


@pytest.mark.asyncio
async def test_pattern_lookup_failure_uses_fallback_insights(minimal_config, sample_prompt):
    dummy = DummyGenerator()
    generator = CandidateGenerator(dummy, BrokenPatternCorpus(), minimal_config)

    insights = await generator.load_insights("general")
    candidates = await generator.exemplar_candidates(sample_prompt, "general")

    assert insights == FALLBACK_INSIGHTS
    assert len(candidates) == minimal_config.exemplar_count
    system_prompt = dummy.calls[-1][0]
    assert "how-to-questions" in system_prompt


@pytest.mark.asyncio
async def test_reinforce_creates_child_candidate(minimal_config):
    parent = PromptCandidate(
        id="exemplar_parent01",
        prompt="Explain sorting.",
        score=0.6,
        test_results=[
            TestCaseResult(input="How to sort?", score=0.9, passed=True),
            TestCaseResult(input="Sort a dict?", score=0.3, passed=False),
        ],
        metadata=CandidateMetadata(generation=2, technique=Technique.EXEMPLAR),
    )
    dummy = DummyGenerator()
    generator = CandidateGenerator(dummy, StaticCorpus(), minimal_config)

    child = await generator.reinforce(parent)

    assert child is not None
    assert child.metadata.technique == Technique.RL
    assert child.metadata.generation == 3
    assert child.metadata.parent_id == "exemplar_parent01"
    assert child.prompt.startswith("Explain sorting.")
    assert child.score == 0.0
    request = dummy.calls[-1][1][0]
    assert "Failed test cases (1)" in request
    assert "Sort a dict?" in request


@pytest.mark.asyncio
async def test_reinforce_returns_none_on_failure(minimal_config):
    parent = PromptCandidate(
        id="exemplar_parent02",
        prompt="Explain sorting.",
        metadata=CandidateMetadata(technique=Technique.EXEMPLAR),
    )
    generator = CandidateGenerator(FailingGenerator(), StaticCorpus(), minimal_config)

    assert await generator.reinforce(parent) is None


@pytest.mark.asyncio
async def test_generated_candidates_can_be_scored(minimal_config, fixed_judge, sample_prompt):
    dummy = DummyGenerator()
    generator = CandidateGenerator(dummy, StaticCorpus(), minimal_config)
    scorer = CandidateScorer(
        ResponseSampler(dummy, minimal_config), fixed_judge, StaticCorpus(), minimal_config
    )

    candidates = await generator.generate(sample_prompt, "general")
    scored = await scorer.evaluate(candidates, "general")

    assert len(scored) == len(candidates)
    assert all(c.score == pytest.approx(0.8) for c in scored)
    assert all(len(c.test_results) == scorer.test_input_count for c in scored)
