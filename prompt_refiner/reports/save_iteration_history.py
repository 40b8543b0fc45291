"""Save iteration history to JSON file."""

import json
from pathlib import Path

import aiofiles

from prompt_refiner.types import OptimizationResult


async def save_iteration_history(result: OptimizationResult, output_dir: str) -> Path | None:
    """
    Save the iteration history of an iterative run to JSON file.

    Args:
        result: Optimization result
        output_dir: Directory to save the JSON file

    Returns:
        Path to saved JSON file, or None if the run was not iterative
    """
    if result.iteration_history is None:
        return None

    history_file = Path(output_dir) / "iteration_history.json"
    history_file.parent.mkdir(parents=True, exist_ok=True)

    history_data = {
        "iterations": [
            iteration.model_dump(mode="json", exclude={"evaluation": {"test_cases"}})
            for iteration in result.iteration_history
        ],
        "summary": {
            "total_iterations": len(result.iteration_history),
            "stopping_reason": result.stopping_reason.value if result.stopping_reason else None,
            "total_cost": result.total_cost,
            "confidence": result.confidence,
        },
    }

    # Write to JSON file with pretty formatting
    async with aiofiles.open(history_file, "w") as f:
        await f.write(json.dumps(history_data, indent=2, ensure_ascii=False))

    print(f"Iteration history saved to: {history_file}")
    return history_file
