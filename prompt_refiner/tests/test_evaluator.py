"""Test before/after evaluation and target checks."""

import pytest

from prompt_refiner.corpus import StaticCorpus
from prompt_refiner.errors import EvaluationError
from prompt_refiner.optimizer.evaluator import (
    SampledEvaluator,
    compute_improvement,
    fallback_evaluation,
    overall_score,
    targets_met,
)
from prompt_refiner.optimizer.sampler import ResponseSampler
from prompt_refiner.tests.helpers import FailingGenerator, FixedJudge, ListCorpus, make_score
from prompt_refiner.types import EvaluationScore, OptimizationTargets


def test_overall_score_weights():
    assert overall_score(1.0, 1.0, 0.0) == pytest.approx(1.0)
    assert overall_score(0.0, 0.0, 1.0) == pytest.approx(0.0)
    assert overall_score(0.8, 0.5, 0.2) == pytest.approx(0.4 + 0.15 + 0.16)


def test_compute_improvement_is_relative_percentage():
    assert compute_improvement(make_score(0.5), make_score(0.6)) == pytest.approx(20.0)
    assert compute_improvement(make_score(0.5), make_score(0.4)) == pytest.approx(-20.0)


def test_compute_improvement_with_zero_baseline():
    assert compute_improvement(make_score(0.0), make_score(0.7)) == 0.0


def test_targets_met_direction_rules():
    score = EvaluationScore(
        overall=0.8,
        response_quality=0.7,
        structure_compliance=0.6,
        hallucination_rate=0.2,
        pass_rate=0.5,
    )

    assert targets_met(OptimizationTargets(overall=0.8), score)
    assert not targets_met(OptimizationTargets(overall=0.81), score)
    assert targets_met(OptimizationTargets(hallucination_rate=0.2), score)
    assert not targets_met(OptimizationTargets(hallucination_rate=0.1), score)
    assert not targets_met(
        OptimizationTargets(overall=0.5, structure_compliance=0.9), score
    )


def test_unset_targets_are_vacuously_met():
    assert targets_met(None, make_score(0.0))
    assert targets_met(OptimizationTargets(), make_score(0.0))


def test_fallback_evaluation_is_neutral():
    evaluation = fallback_evaluation()

    assert evaluation.before_score.overall == 0.5
    assert evaluation.after_score.overall == 0.5
    assert evaluation.improvement == 0.0


@pytest.mark.asyncio
async def test_sampled_evaluator_scores_both_prompts(minimal_config, dummy_generator):
    evaluator = SampledEvaluator(
        ResponseSampler(dummy_generator, minimal_config),
        FixedJudge(score=0.9),
        StaticCorpus(),
        minimal_config,
        domain="education",
    )

    result = await evaluator.evaluate(
        "Answer questions.", "Answer questions in clearly labelled sections, step by step."
    )

    assert len(result.test_cases) == minimal_config.max_test_inputs
    assert result.metrics.total_tests == minimal_config.max_test_inputs
    assert result.metrics.passed_tests == minimal_config.max_test_inputs
    assert result.before_score.response_quality == pytest.approx(0.9)
    assert result.after_score.response_quality == pytest.approx(0.9)
    # the structured prompt yields headed, bulleted responses
    assert result.after_score.structure_compliance > result.before_score.structure_compliance
    assert result.improvement > 0
    assert all(case.before_output and case.after_output for case in result.test_cases)


@pytest.mark.asyncio
async def test_sampled_evaluator_without_inputs_raises(minimal_config, dummy_generator):
    evaluator = SampledEvaluator(
        ResponseSampler(dummy_generator, minimal_config),
        FixedJudge(),
        ListCorpus([]),
        minimal_config,
    )

    with pytest.raises(EvaluationError):
        await evaluator.evaluate("a", "b")


@pytest.mark.asyncio
async def test_sampled_evaluator_wraps_generation_errors(minimal_config):
    evaluator = SampledEvaluator(
        ResponseSampler(FailingGenerator(), minimal_config),
        FixedJudge(),
        StaticCorpus(),
        minimal_config,
    )

    with pytest.raises(EvaluationError):
        await evaluator.evaluate("a", "b")
