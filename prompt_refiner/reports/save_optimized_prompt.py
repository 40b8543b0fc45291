"""Save the optimized prompt to file."""

from pathlib import Path

import aiofiles

from prompt_refiner.types import OptimizationResult


async def save_optimized_prompt(result: OptimizationResult, output_dir: str) -> Path:
    """
    Save the optimized prompt to file.

    Args:
        result: Optimization result containing the optimized prompt
        output_dir: Directory to save the prompt

    Returns:
        Path to saved prompt file
    """
    output_file = Path(output_dir) / "optimized_prompt.md"
    output_file.parent.mkdir(parents=True, exist_ok=True)

    async with aiofiles.open(output_file, "w") as f:
        await f.write(result.optimized_content)

    print(f"\nOptimized prompt saved to: {output_file}")
    return output_file
