"""Save per-model evaluation report to file."""

from pathlib import Path

import aiofiles

from prompt_refiner.types import ModelEvaluationReport


def format_model_report(report: ModelEvaluationReport) -> str:
    """Render a per-model evaluation report as markdown."""
    lines = [
        "# Prompt Evaluation Report\n\n",
        f"**Generated:** {report.timestamp.strftime('%Y-%m-%d %H:%M:%S')}\n",
        f"**Before/after improvement:** {report.improvement:.1f}%\n",
    ]

    comparison = report.model_comparison
    if comparison is None:
        return "".join(lines)

    lines.append(f"**Overall model improvement:** {comparison.overall_improvement:.1f}%\n")
    lines.append("\n## Model Performance Results\n\n")

    originals = {r.model: r for r in comparison.original_results}
    for result in comparison.optimized_results:
        lines.append(f"### {result.model}\n")
        if result.error:
            lines.append(f"- **Error:** {result.error}\n\n")
            continue
        lines.append(f"- **Hallucination Rate:** {result.hallucination_rate * 100:.1f}%\n")
        lines.append(f"- **Structure Score:** {result.structure_score * 100:.1f}%\n")
        lines.append(f"- **Consistency Score:** {result.consistency_score * 100:.1f}%\n")
        original = originals.get(result.model)
        if original is not None and original.error is None:
            lines.append(
                f"- **Original Hallucination Rate:** {original.hallucination_rate * 100:.1f}%\n"
            )
            lines.append(
                f"- **Original Structure Score:** {original.structure_score * 100:.1f}%\n"
            )
            lines.append(
                f"- **Original Consistency Score:** {original.consistency_score * 100:.1f}%\n"
            )
        improvement = comparison.improvements.get(result.model)
        if improvement is None:
            lines.append("- **Improvement:** n/a\n\n")
        else:
            lines.append(f"- **Improvement:** {improvement:.1f}%\n\n")

    return "".join(lines)


async def save_model_report(report: ModelEvaluationReport, output_dir: str) -> Path:
    """
    Save a per-model evaluation report to a markdown file.

    Args:
        report: Report from evaluate_with_models
        output_dir: Directory to save the report

    Returns:
        Path to saved report file
    """
    report_file = Path(output_dir) / "model_evaluation.md"
    report_file.parent.mkdir(parents=True, exist_ok=True)

    async with aiofiles.open(report_file, "w") as f:
        await f.write(format_model_report(report))

    print(f"Model evaluation report saved to: {report_file}")
    return report_file
