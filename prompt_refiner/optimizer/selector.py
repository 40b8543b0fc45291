"""Candidate scoring and multi-objective selection."""

import asyncio
import logging
from collections.abc import Callable

from prompt_refiner.config import OptimizerConfig
from prompt_refiner.corpus import TestInputCorpus
from prompt_refiner.errors import GenerationError
from prompt_refiner.metrics import jaccard_similarity, tokenize
from prompt_refiner.optimizer.judge import QualityJudge
from prompt_refiner.optimizer.sampler import ResponseSampler
from prompt_refiner.types import PromptCandidate, TestCaseResult

logger = logging.getLogger(__name__)

SCORE_WEIGHT = 0.8
DIVERSITY_WEIGHT = 0.2


def calculate_diversity(prompt: str, all_prompts: list[str]) -> float:
    """
    Dissimilarity of a prompt from its siblings.

    Args:
        prompt: Prompt to measure
        all_prompts: Every prompt in the round (may include ``prompt`` itself)

    Returns:
        1 - mean Jaccard similarity against the other prompts; 1 when alone
    """
    if len(all_prompts) <= 1:
        return 1.0

    words = tokenize(prompt)
    similarities = [
        jaccard_similarity(words, tokenize(other)) for other in all_prompts if other != prompt
    ]
    if not similarities:
        return 1.0
    return 1.0 - sum(similarities) / len(similarities)


def combined_score(
    candidate: PromptCandidate,
    score_weight: float = SCORE_WEIGHT,
    diversity_weight: float = DIVERSITY_WEIGHT,
) -> float:
    return candidate.score * score_weight + candidate.diversity * diversity_weight


def select_best(
    candidates: list[PromptCandidate],
    score_weight: float = SCORE_WEIGHT,
    diversity_weight: float = DIVERSITY_WEIGHT,
) -> PromptCandidate | None:
    """
    Pick the candidate with the highest combined score.

    Ties keep input order, so repeated calls on the same list return the same
    candidate.

    Returns:
        The winning candidate, or None when there are no candidates
    """
    if not candidates:
        return None
    ranked = sorted(
        candidates,
        key=lambda c: combined_score(c, score_weight, diversity_weight),
        reverse=True,
    )
    return ranked[0]


class CandidateScorer:
    """Scores candidates by simulating and judging responses to domain test inputs."""

    def __init__(
        self,
        sampler: ResponseSampler,
        judge: QualityJudge,
        test_corpus: TestInputCorpus,
        config: OptimizerConfig,
        progress_callback: Callable[[str], None] | None = None,
    ):
        """
        Initialize the scorer.

        Args:
            sampler: Response sampler used to simulate the configured assistant
            judge: Quality judge for simulated responses
            test_corpus: Source of domain test inputs
            config: Optimizer configuration
            progress_callback: Optional callback for progress messages
        """
        self.sampler = sampler
        self.judge = judge
        self.test_corpus = test_corpus
        self.config = config
        self._print_progress = progress_callback or (lambda msg: None)

    @property
    def test_input_count(self) -> int:
        return min(self.config.max_test_inputs, self.config.exemplar_count)

    async def evaluate(
        self, candidates: list[PromptCandidate], domain: str
    ) -> list[PromptCandidate]:
        """
        Score every candidate and compute its diversity.

        Test inputs are drawn once and shared by all candidates. A candidate whose
        responses cannot be generated gets a score of 0.

        Args:
            candidates: Unscored candidates
            domain: Domain for test inputs

        Returns:
            Scored copies of the candidates, highest score first
        """
        if not candidates:
            return []

        test_inputs = await self.test_corpus.sample_inputs(domain, self.test_input_count)
        if not test_inputs:
            logger.warning(f"No test inputs available for domain '{domain}'")

        self._print_progress(
            f"Evaluating {len(candidates)} candidates × {len(test_inputs)} test inputs..."
        )

        if self.config.parallel_execution:
            results = await asyncio.gather(
                *[self._run_tests(candidate, test_inputs) for candidate in candidates]
            )
        else:
            results = []
            for i, candidate in enumerate(candidates, 1):
                self._print_progress(f"  Evaluating candidate {i}/{len(candidates)}...")
                results.append(await self._run_tests(candidate, test_inputs))

        all_prompts = [candidate.prompt for candidate in candidates]
        scored = []
        for candidate, test_results in zip(candidates, results, strict=True):
            score = (
                sum(r.score for r in test_results) / len(test_results) if test_results else 0.0
            )
            scored.append(
                candidate.model_copy(
                    update={
                        "test_results": test_results,
                        "score": score,
                        "diversity": calculate_diversity(candidate.prompt, all_prompts),
                    }
                )
            )

        scored.sort(key=lambda c: c.score, reverse=True)
        logger.info(f"Scored {len(scored)} candidates: {[f'{c.score:.2f}' for c in scored[:5]]}")
        return scored

    async def score_candidate(self, candidate: PromptCandidate, domain: str) -> PromptCandidate:
        """Score a single candidate in isolation (diversity 1)."""
        test_inputs = await self.test_corpus.sample_inputs(domain, self.test_input_count)
        test_results = await self._run_tests(candidate, test_inputs)
        score = sum(r.score for r in test_results) / len(test_results) if test_results else 0.0
        return candidate.model_copy(
            update={"test_results": test_results, "score": score, "diversity": 1.0}
        )

    async def _run_tests(
        self, candidate: PromptCandidate, test_inputs: list[str]
    ) -> list[TestCaseResult]:
        prompt = candidate.prompt
        try:
            if self.config.parallel_execution:
                tasks = [self._run_test(prompt, test_input) for test_input in test_inputs]
                return list(await asyncio.gather(*tasks))
            return [await self._run_test(prompt, test_input) for test_input in test_inputs]
        except GenerationError as e:
            logger.error(f"Error evaluating candidate {candidate.id}: {e}")
            return []

    async def _run_test(self, prompt: str, test_input: str) -> TestCaseResult:
        response = await self.sampler.simulate(prompt, test_input)
        score = await self.judge.score(test_input, response)
        return TestCaseResult(
            input=test_input,
            after_output=response,
            score=score,
            passed=score > self.config.pass_threshold,
        )
