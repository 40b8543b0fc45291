"""Entry point for the prompt refiner.

Run the refinement pipeline with:
    python -m prompt_refiner PROMPT_FILE [--config config.yaml] [--max-iterations N]

Requirements:
    - OpenAI API key set in .env file or OPENAI_API_KEY environment variable
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from prompt_refiner.config import OptimizationConfig, load_config, setup_logging
from prompt_refiner.connectors import OpenAIGenerator
from prompt_refiner.runner import OptimizationRunner
from prompt_refiner.types import OptimizationTargets

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="prompt-refiner", description="Refine a prompt with LLM-generated variants"
    )
    parser.add_argument("prompt_file", type=Path, help="File containing the prompt to refine")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--max-iterations", type=int, default=None, help="Iteration cap")
    parser.add_argument("--budget", type=float, default=None, help="Spending cap for the run")
    parser.add_argument(
        "--target-overall", type=float, default=None, help="Overall score to reach (0-1)"
    )
    parser.add_argument(
        "--compare-models",
        action="store_true",
        help="Sample the configured models with both prompts",
    )
    parser.add_argument("--output-dir", type=Path, default=None, help="Where to write reports")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args(argv)


def build_request(args: argparse.Namespace) -> OptimizationConfig:
    """Per-request settings from command-line flags."""
    targets = None
    if args.target_overall is not None:
        targets = OptimizationTargets(overall=args.target_overall)
    return OptimizationConfig(
        max_iterations=args.max_iterations,
        budget=args.budget,
        targets=targets,
    )


async def run(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    if args.output_dir is not None:
        config.output_dir = args.output_dir
    config.verbose = not args.quiet

    prompt = args.prompt_file.read_text()
    generator = OpenAIGenerator(
        api_key=config.openai_api_key,
        base_url=config.base_url,
        timeout_seconds=config.sample_timeout_seconds,
    )
    runner = OptimizationRunner(generator, config, verbose=not args.quiet)
    await runner.run(prompt, build_request(args), compare_models=args.compare_models)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    # Load environment variables
    load_dotenv()
    setup_logging()

    args = parse_args(argv)
    if not args.prompt_file.exists():
        logger.error(f"Prompt file not found: {args.prompt_file}")
        sys.exit(1)

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
