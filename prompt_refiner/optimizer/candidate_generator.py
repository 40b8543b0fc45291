"""Candidate generation: exemplar-guided, diversity-driven and structural variants."""

import asyncio
import logging
import re
import uuid
from collections.abc import Awaitable, Callable

from prompt_refiner.config import OptimizerConfig
from prompt_refiner.connectors import BaseGenerator
from prompt_refiner.corpus import FALLBACK_INSIGHTS, PatternCorpus
from prompt_refiner.errors import ParseError, PromptRefinerError
from prompt_refiner.types import CandidateMetadata, PatternInsights, PromptCandidate, Technique

logger = logging.getLogger(__name__)

DIVERSITY_TEMPERATURE = 0.9
STRUCTURAL_TEMPERATURE = 0.3
STRUCTURAL_MAX_TOKENS = 500
MAX_SUCCESSFUL_EXAMPLES = 3
MAX_RL_EXAMPLES = 3

RL_SYSTEM_PROMPT = (
    "You are a prompt engineering expert using reinforcement learning to iteratively improve "
    "prompts. Analyze the test results and refine the prompt to address failures while "
    "maintaining successes."
)

VARIATION_SPLIT = re.compile(r"VARIATION\s*\[?\d+\]?\s*:", re.IGNORECASE)
REASONING_SPLIT = re.compile(r"REASONING\s*\[?\d+\]?\s*:", re.IGNORECASE)

DIVERSITY_SYSTEM_PROMPT = """\
You are an expert prompt engineer focused on generating diverse prompt variations.
Create prompts that:
1. Explore different communication styles (formal, conversational, technical)
2. Vary the level of detail and specificity
3. Experiment with different structural approaches
4. Test different ways of framing the same request

Ensure each variation maintains the core intent but approaches it differently."""


def new_candidate_id(technique: Technique) -> str:
    return f"{technique.value}_{uuid.uuid4().hex[:8]}"


def parse_variations(
    text: str, technique: Technique, generation: int = 1, parent_id: str | None = None
) -> list[PromptCandidate]:
    """
    Parse ``VARIATION n:`` / ``REASONING n:`` blocks into candidates.

    Blocks missing a reasoning section or with an empty prompt are skipped.

    Args:
        text: Raw generator output
        technique: Technique tag for the parsed candidates
        generation: Generation number recorded in metadata
        parent_id: Optional parent candidate id

    Returns:
        Parsed candidates in block order

    Raises:
        ParseError: If no block could be parsed
    """
    candidates = []
    for block in VARIATION_SPLIT.split(text)[1:]:
        parts = REASONING_SPLIT.split(block, maxsplit=1)
        if len(parts) < 2:
            continue
        prompt, reasoning = parts[0].strip(), parts[1].strip()
        if not prompt:
            continue
        candidates.append(
            PromptCandidate(
                id=new_candidate_id(technique),
                prompt=prompt,
                metadata=CandidateMetadata(
                    generation=generation,
                    parent_id=parent_id,
                    technique=technique,
                    reasoning=reasoning,
                ),
            )
        )

    if not candidates:
        raise ParseError("No VARIATION/REASONING blocks found in response", raw_text=text)
    return candidates


def _variation_request(original_prompt: str, count: int, diverse: bool) -> str:
    kind = "diverse" if diverse else "improved"
    body = "diverse prompt variation" if diverse else "improved prompt"
    explanation = (
        "the different approach taken" if diverse else "changes and expected improvements"
    )
    return (
        f'Original prompt: "{original_prompt}"\n\n'
        f"Generate {count} {kind} variations. Format each as:\n"
        f"VARIATION [N]:\n[{body}]\n\nREASONING [N]:\n[explanation of {explanation}]"
    )


class CandidateGenerator:
    """Produces prompt candidates with three independent techniques."""

    def __init__(
        self,
        generator: BaseGenerator,
        pattern_corpus: PatternCorpus,
        config: OptimizerConfig,
        progress_callback: Callable[[str], None] | None = None,
    ):
        """
        Initialize the candidate generator.

        Args:
            generator: Shared text-generation capability
            pattern_corpus: Source of successful prompt patterns
            config: Optimizer configuration
            progress_callback: Optional callback for progress messages
        """
        self.generator = generator
        self.pattern_corpus = pattern_corpus
        self.config = config
        self._print_progress = progress_callback or (lambda msg: None)

    async def generate(self, original_prompt: str, domain: str) -> list[PromptCandidate]:
        """
        Run all techniques and collect their candidates.

        A failing technique contributes no candidates; the others still run.

        Args:
            original_prompt: Prompt to improve
            domain: Domain used for pattern lookup

        Returns:
            Candidates from every technique that succeeded
        """
        techniques: list[tuple[Technique, Callable[[], Awaitable[list[PromptCandidate]]]]] = [
            (Technique.EXEMPLAR, lambda: self.exemplar_candidates(original_prompt, domain)),
            (Technique.DIVERSITY, lambda: self.diversity_candidates(original_prompt)),
            (Technique.STRUCTURAL, lambda: self.structural_candidates(original_prompt)),
        ]

        if self.config.parallel_execution:
            results = await asyncio.gather(
                *[self._run_technique(technique, run) for technique, run in techniques]
            )
        else:
            results = []
            for technique, run in techniques:
                results.append(await self._run_technique(technique, run))

        candidates = [candidate for batch in results for candidate in batch]
        self._print_progress(f"Generated {len(candidates)} candidates")
        return candidates

    async def _run_technique(
        self, technique: Technique, run: Callable[[], Awaitable[list[PromptCandidate]]]
    ) -> list[PromptCandidate]:
        try:
            candidates = await run()
        except PromptRefinerError as e:
            logger.error(f"Error generating {technique.value} candidates: {e}")
            return []
        logger.info(f"{technique.value} technique produced {len(candidates)} candidates")
        return candidates

    async def load_insights(self, domain: str) -> PatternInsights:
        """Pattern insights for the domain, or a canned fallback when the lookup fails."""
        try:
            return await self.pattern_corpus.patterns(domain)
        except Exception as e:
            logger.warning(f"Pattern lookup failed for domain '{domain}', using fallback: {e}")
            return FALLBACK_INSIGHTS

    async def exemplar_candidates(self, original_prompt: str, domain: str) -> list[PromptCandidate]:
        """Variants guided by successful patterns from the corpus."""
        insights = await self.load_insights(domain)
        count = self.config.exemplar_count
        patterns = "\n".join(f"- {p}" for p in insights.common_patterns)
        examples = "\n".join(
            f'- "{p}"' for p in insights.successful_prompts[:MAX_SUCCESSFUL_EXAMPLES]
        )
        system_prompt = (
            f"You are an expert prompt engineer. Generate {count} improved versions of the "
            "given prompt by incorporating successful patterns from real user interactions.\n\n"
            f"Successful patterns identified:\n{patterns}\n\n"
            f"Successful prompt examples:\n{examples}\n\n"
            f"Recommended structure: {insights.recommended_structure}\n\n"
            "For each variation, explain your reasoning and maintain the original intent while "
            "improving clarity, specificity, and likely performance."
        )

        llm = self.config.generator_llm
        text = await self.generator.generate(
            system_prompt,
            [_variation_request(original_prompt, count, diverse=False)],
            llm.model,
            llm.max_tokens,
            llm.temperature,
        )
        return parse_variations(text, Technique.EXEMPLAR)

    async def diversity_candidates(self, original_prompt: str) -> list[PromptCandidate]:
        """Stylistically different rewrites at a higher temperature."""
        llm = self.config.generator_llm
        text = await self.generator.generate(
            DIVERSITY_SYSTEM_PROMPT,
            [_variation_request(original_prompt, self.config.diversity_count, diverse=True)],
            llm.model,
            llm.max_tokens,
            DIVERSITY_TEMPERATURE,
        )
        return parse_variations(text, Technique.DIVERSITY)

    async def structural_candidates(self, original_prompt: str) -> list[PromptCandidate]:
        """One candidate per named structural technique (first N of the list)."""
        candidates = []
        limit = self.config.structural_technique_limit
        for technique in self.config.structural_techniques[:limit]:
            try:
                improved = await self._apply_structural_technique(original_prompt, technique)
            except PromptRefinerError as e:
                logger.error(f"Error applying structural technique '{technique}': {e}")
                continue
            if not improved:
                logger.warning(f"Structural technique '{technique}' returned an empty prompt")
                continue
            candidates.append(
                PromptCandidate(
                    id=new_candidate_id(Technique.STRUCTURAL),
                    prompt=improved,
                    metadata=CandidateMetadata(
                        technique=Technique.STRUCTURAL,
                        reasoning=f"Applied structural technique: {technique}",
                    ),
                )
            )
        return candidates

    async def reinforce(self, candidate: PromptCandidate) -> PromptCandidate | None:
        """
        Refine a scored candidate from its passed and failed test results.

        Args:
            candidate: Scored candidate with test results

        Returns:
            Unscored child candidate (technique ``rl``), or None when refinement fails
        """
        passed = [r for r in candidate.test_results if r.passed]
        failed = [r for r in candidate.test_results if not r.passed]
        passed_lines = "\n".join(
            f'- Input: "{r.input}" | Score: {r.score:.2f}' for r in passed[:MAX_RL_EXAMPLES]
        )
        failed_lines = "\n".join(
            f'- Input: "{r.input}" | Score: {r.score:.2f}' for r in failed[:MAX_RL_EXAMPLES]
        )
        request = (
            f'Current prompt: "{candidate.prompt}"\n\n'
            f"Successful test cases ({len(passed)}):\n{passed_lines}\n\n"
            f"Failed test cases ({len(failed)}):\n{failed_lines}\n\n"
            "Refine the prompt to improve performance on failed cases while maintaining "
            "performance on successful ones. Return only the refined prompt."
        )

        llm = self.config.refiner_llm
        try:
            text = await self.generator.generate(
                RL_SYSTEM_PROMPT, [request], llm.model, llm.max_tokens, llm.temperature
            )
        except PromptRefinerError as e:
            logger.error(f"Error in reinforcement learning step: {e}")
            return None

        refined = text.strip()
        if not refined:
            return None
        return PromptCandidate(
            id=new_candidate_id(Technique.RL),
            prompt=refined,
            metadata=CandidateMetadata(
                generation=candidate.metadata.generation + 1,
                parent_id=candidate.id,
                technique=Technique.RL,
                reasoning="Reinforcement learning refinement based on test performance",
            ),
        )

    async def _apply_structural_technique(self, original_prompt: str, technique: str) -> str:
        system_prompt = (
            "You are a prompt engineering expert. Improve the given prompt by applying this "
            f'specific technique: "{technique}". Maintain the original intent while making the '
            "structural improvement."
        )
        request = (
            f'Original prompt: "{original_prompt}"\n\n'
            f'Apply the technique: "{technique}"\n\n'
            "Return only the improved prompt."
        )
        text = await self.generator.generate(
            system_prompt,
            [request],
            self.config.generator_llm.model,
            STRUCTURAL_MAX_TOKENS,
            STRUCTURAL_TEMPERATURE,
        )
        return text.strip()
