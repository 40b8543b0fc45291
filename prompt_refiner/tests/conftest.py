"""Pytest fixtures for prompt refiner tests."""

import pytest
from agents import Runner

from prompt_refiner.config import LLMConfig, ModelName, OptimizerConfig
from prompt_refiner.tests.helpers import DummyGenerator, FixedJudge
from prompt_refiner.tests.helpers.fake_agents import fake_runner_run


@pytest.fixture
def dummy_generator():
    """
    Provide a DummyGenerator for fast, deterministic model responses.

    This replaces the real generator (e.g., OpenAI) with a fake that answers
    instantly without API calls.
    """
    return DummyGenerator(seed=42)


@pytest.fixture
def mock_agents(monkeypatch):
    """
    Mock the agents.Runner.run method to return fake responses.

    This prevents real LLM API calls for the refiner and judge agents.
    """
    monkeypatch.setattr(Runner, "run", fake_runner_run)


@pytest.fixture
def fixed_judge():
    """Judge returning a constant 0.8."""
    return FixedJudge(score=0.8)


@pytest.fixture
def sample_prompt():
    """A short prompt worth optimizing."""
    return "Help me write code that sorts a list.\nKeep it short."


@pytest.fixture
def minimal_config(tmp_path):
    """
    Provide minimal configuration for fast tests.

    - 2 exemplar and 2 diversity variants
    - 1 structural technique
    - 2 models sampled twice each
    - Sequential execution
    """
    return OptimizerConfig(
        exemplar_count=2,
        diversity_count=2,
        structural_technique_limit=1,
        max_test_inputs=2,
        models=[ModelName.CLAUDE_HAIKU, ModelName.GPT_4O_MINI],
        sample_size=2,
        sample_timeout_seconds=1.0,
        request_timeout_seconds=10.0,
        # LLM configs (just metadata - actual calls are faked)
        generator_llm=LLMConfig(model="gpt-4o", temperature=0.7),
        refiner_llm=LLMConfig(model="gpt-4o", temperature=0.5),
        judge_llm=LLMConfig(model="gpt-4o-mini", temperature=0.0),
        simulator_llm=LLMConfig(model="gpt-4o-mini", temperature=0.1),
        explainer_llm=LLMConfig(model="gpt-4o-mini", temperature=0.3),
        # Execution
        parallel_execution=False,  # Use sync mode for simpler debugging
        verbose=False,  # Reduce noise in test output
        output_dir=tmp_path / "refiner_output",
    )


@pytest.fixture
def parallel_config(minimal_config):
    """
    Provide config with parallel execution enabled.

    Useful for testing async/parallel code paths.
    """
    config = minimal_config.model_copy()
    config.parallel_execution = True
    return config
