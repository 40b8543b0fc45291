"""Test the optimizer end to end with fake generators and agents."""

import asyncio

import pytest
from agents import Runner

import prompt_refiner.agents.client as agent_client
from prompt_refiner.config import ModelName, OptimizationConfig
from prompt_refiner.optimizer import OptimizationRun, PromptOptimizer
from prompt_refiner.optimizer.fallback import FAST_CONFIDENCE
from prompt_refiner.optimizer.orchestrator import PARTIAL_EXPLANATION
from prompt_refiner.tests.helpers import (
    DummyGenerator,
    FailingGenerator,
    KeywordJudge,
    ScriptedEvaluator,
    fake_runner_run,
)
from prompt_refiner.types import OptimizationTargets, StoppingReason, Technique


@pytest.mark.asyncio
async def test_single_shot_selects_a_candidate(
    minimal_config, dummy_generator, mock_agents, sample_prompt
):
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config)

    result = await optimizer.optimize(sample_prompt)

    assert result.mode == "single_shot"
    assert result.iteration_history is None
    assert result.best_candidate is not None
    assert result.optimized_content == result.best_candidate.prompt
    assert result.confidence == pytest.approx(result.best_candidate.score)
    assert result.insights is not None
    assert result.insights.common_patterns
    assert result.changes
    assert 0.6 <= result.best_candidate.score <= 0.95


@pytest.mark.asyncio
async def test_single_shot_modes_agree(
    minimal_config, parallel_config, mock_agents, sample_prompt
):
    sequential = await PromptOptimizer(DummyGenerator(), config=minimal_config).optimize(
        sample_prompt
    )
    parallel = await PromptOptimizer(DummyGenerator(), config=parallel_config).optimize(
        sample_prompt
    )

    assert sequential.optimized_content == parallel.optimized_content
    assert sequential.confidence == pytest.approx(parallel.confidence)


@pytest.mark.asyncio
async def test_single_shot_with_reinforcement_step(
    minimal_config, dummy_generator, mock_agents, sample_prompt
):
    minimal_config.reinforcement_learning = True
    judge = KeywordJudge("failed case", high=0.95, low=0.7)
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config, judge=judge)

    result = await optimizer.optimize(sample_prompt)

    best = result.best_candidate
    assert best is not None
    assert best.metadata.technique == Technique.RL
    assert best.metadata.parent_id is not None
    assert best.metadata.generation == 2
    assert best.prompt.endswith("Address failed cases explicitly.")
    assert best.score == pytest.approx(0.95)
    assert result.optimized_content == best.prompt
    assert result.confidence == pytest.approx(0.95)
    rl_calls = [c for c in dummy_generator.calls if "reinforcement learning" in c[0]]
    assert len(rl_calls) == 1


@pytest.mark.asyncio
async def test_single_shot_when_every_technique_fails(minimal_config, mock_agents, sample_prompt):
    optimizer = PromptOptimizer(FailingGenerator(), config=minimal_config)

    result = await optimizer.optimize(sample_prompt)

    assert result.best_candidate is None
    assert result.optimized_content == sample_prompt
    assert result.confidence == 0.5


@pytest.mark.asyncio
async def test_iterative_stops_when_targets_met(
    minimal_config, dummy_generator, mock_agents, sample_prompt
):
    evaluator = ScriptedEvaluator([0.9])
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config, evaluator=evaluator)

    result = await optimizer.optimize(
        sample_prompt,
        OptimizationConfig(max_iterations=5, targets=OptimizationTargets(overall=0.85)),
    )

    assert result.mode == "iterative"
    assert len(result.iteration_history) == 1
    assert result.stopping_reason == StoppingReason.TARGETS_MET
    assert result.optimized_content == result.iteration_history[0].content
    assert result.confidence == pytest.approx(0.9)


@pytest.mark.asyncio
async def test_iterative_with_sampled_evaluator(
    minimal_config, dummy_generator, mock_agents, sample_prompt
):
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config)

    result = await optimizer.optimize(
        sample_prompt,
        OptimizationConfig(max_iterations=2, targets=OptimizationTargets(overall=0.99)),
    )

    assert result.mode == "iterative"
    assert 1 <= len(result.iteration_history) <= 2
    assert result.stopping_reason in (
        StoppingReason.MAX_ITERATIONS,
        StoppingReason.DIMINISHING_RETURNS,
    )
    assert result.total_cost == pytest.approx(0.1 * len(result.iteration_history))
    for iteration in result.iteration_history:
        assert iteration.evaluation.test_cases


@pytest.mark.asyncio
async def test_timeout_returns_best_iteration_so_far(
    minimal_config, dummy_generator, mock_agents, sample_prompt
):
    minimal_config.request_timeout_seconds = 0.3
    evaluator = ScriptedEvaluator([0.8], delay=5.0, slow_from=1)
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config, evaluator=evaluator)

    result = await optimizer.optimize(
        sample_prompt,
        OptimizationConfig(max_iterations=5, targets=OptimizationTargets(overall=0.99)),
    )

    assert result.mode == "iterative"
    assert result.explanation == PARTIAL_EXPLANATION
    assert len(result.iteration_history) == 1
    assert result.stopping_reason is None
    assert result.optimized_content == result.iteration_history[0].content


@pytest.mark.asyncio
async def test_timeout_without_iterations_uses_fast_path(
    minimal_config, dummy_generator, mock_agents, sample_prompt
):
    minimal_config.request_timeout_seconds = 0.2
    evaluator = ScriptedEvaluator([0.8], delay=5.0)
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config, evaluator=evaluator)
    run = OptimizationRun()

    result = await optimizer.optimize(sample_prompt, OptimizationConfig(max_iterations=3), run=run)

    assert result.mode == "fast"
    assert result.confidence == FAST_CONFIDENCE
    assert optimizer.partial_result(run) is None


@pytest.mark.asyncio
async def test_concurrent_requests_keep_their_own_partial_results(
    minimal_config, dummy_generator, mock_agents, sample_prompt
):
    minimal_config.request_timeout_seconds = 0.5
    evaluator = ScriptedEvaluator([0.8], delay=5.0, slow_from=1)
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config, evaluator=evaluator)
    request = OptimizationConfig(max_iterations=5, targets=OptimizationTargets(overall=0.99))

    async def later_request():
        await asyncio.sleep(0.05)
        return await optimizer.optimize("Summarize this article.", request)

    first, second = await asyncio.gather(
        optimizer.optimize(sample_prompt, request), later_request()
    )

    assert first.mode == "iterative"
    assert first.original_content == sample_prompt
    assert first.explanation == PARTIAL_EXPLANATION
    assert len(first.iteration_history) == 1
    assert second.mode == "fast"
    assert second.original_content == "Summarize this article."


@pytest.mark.asyncio
async def test_cancelled_request_keeps_completed_iterations(
    minimal_config, dummy_generator, mock_agents, sample_prompt
):
    evaluator = ScriptedEvaluator([0.8], delay=5.0, slow_from=1)
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config, evaluator=evaluator)
    request = OptimizationConfig(max_iterations=5, targets=OptimizationTargets(overall=0.99))
    run = OptimizationRun()

    task = asyncio.create_task(optimizer.optimize(sample_prompt, request, run=run))
    # The second evaluation starts only after the first iteration is recorded
    while len(evaluator.calls) < 2:
        await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    result = optimizer.partial_result(run)
    assert result is not None
    assert result.mode == "iterative"
    assert result.explanation == PARTIAL_EXPLANATION
    assert len(result.iteration_history) == 1
    assert result.stopping_reason is None
    assert result.optimized_content == result.iteration_history[0].content


@pytest.mark.asyncio
async def test_evaluate_with_models(minimal_config, dummy_generator, mock_agents):
    evaluator = ScriptedEvaluator([0.6])
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config, evaluator=evaluator)

    report = await optimizer.evaluate_with_models(
        "Explain sorting.", "Explain sorting in clearly labelled sections."
    )

    assert report.improvement == pytest.approx(20.0)
    assert set(report.hallucination_rates) == {"claude-3-haiku", "gpt-4o-mini"}
    assert set(report.structure_scores) == {"claude-3-haiku", "gpt-4o-mini"}
    assert set(report.consistency_scores) == {"claude-3-haiku", "gpt-4o-mini"}
    assert report.model_comparison is not None
    assert len(report.model_comparison.original_results) == 2


@pytest.mark.asyncio
async def test_evaluate_with_models_survives_failures(minimal_config, mock_agents):
    evaluator = ScriptedEvaluator([None])
    optimizer = PromptOptimizer(FailingGenerator(), config=minimal_config, evaluator=evaluator)

    report = await optimizer.evaluate_with_models(
        "Explain sorting.", "Explain sorting well.", models=[ModelName.GPT_4O]
    )

    assert report.improvement == 0.0
    assert report.after_score.overall == 0.5
    assert report.hallucination_rates == {"gpt-4o": 0.0}
    assert report.model_comparison.improvements == {}
    result = report.model_comparison.optimized_results[0]
    assert result.error == "Error: Failed to generate response from gpt-4o"


def test_configured_domain_overrides_inference(minimal_config, dummy_generator):
    minimal_config.domain = "education"
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config)

    assert optimizer.resolve_domain("Write some code for me.") == "education"


def test_domain_is_inferred_from_prompt(minimal_config, dummy_generator):
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config)

    assert optimizer.resolve_domain("Write some code for me.") == "software-development"


@pytest.mark.asyncio
async def test_iterative_refiner_gets_inferred_use_case(
    minimal_config, dummy_generator, monkeypatch
):
    instructions = []

    async def recording_run(agent, task_description):
        if agent.name == "PromptRefiner":
            instructions.append(agent.instructions)
        return await fake_runner_run(agent, task_description)

    monkeypatch.setattr(Runner, "run", recording_run)
    evaluator = ScriptedEvaluator([0.9])
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config, evaluator=evaluator)

    await optimizer.optimize(
        "You are a helpful assistant. Explain recursion.", OptimizationConfig(max_iterations=1)
    )

    assert optimizer.resolve_use_case("Summarize the report.") == "summarization"
    assert "**USE CASE**: assistant" in instructions[0]


def test_default_judge_uses_sample_timeout(minimal_config, dummy_generator):
    optimizer = PromptOptimizer(dummy_generator, config=minimal_config)

    assert optimizer.judge.timeout_seconds == minimal_config.sample_timeout_seconds


def test_gateway_routes_agents_through_base_url(monkeypatch, minimal_config, dummy_generator):
    clients = []
    apis = []
    monkeypatch.setattr(
        agent_client,
        "set_default_openai_client",
        lambda client, use_for_tracing=True: clients.append(client),
    )
    monkeypatch.setattr(agent_client, "set_default_openai_api", apis.append)
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")

    PromptOptimizer(dummy_generator, config=minimal_config)
    assert clients == []

    minimal_config.base_url = "http://localhost:8080/v1"
    PromptOptimizer(dummy_generator, config=minimal_config)

    assert len(clients) == 1
    assert str(clients[0].base_url).rstrip("/") == "http://localhost:8080/v1"
    assert apis == ["chat_completions"]
