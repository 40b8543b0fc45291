"""Test helpers for prompt refiner tests."""

from prompt_refiner.tests.helpers.dummy_connector import (
    DummyGenerator,
    FailingGenerator,
    SlowGenerator,
)
from prompt_refiner.tests.helpers.fake_agents import (
    create_fake_judge_response,
    create_fake_refiner_response,
    fake_runner_run,
)
from prompt_refiner.tests.helpers.fake_collaborators import (
    BrokenPatternCorpus,
    FixedJudge,
    KeywordJudge,
    ListCorpus,
    ScriptedEvaluator,
    make_score,
)

__all__ = [
    "BrokenPatternCorpus",
    "DummyGenerator",
    "FailingGenerator",
    "FixedJudge",
    "KeywordJudge",
    "ListCorpus",
    "ScriptedEvaluator",
    "SlowGenerator",
    "create_fake_judge_response",
    "create_fake_refiner_response",
    "fake_runner_run",
    "make_score",
]
