"""Save detailed optimization report to file."""

from pathlib import Path

import aiofiles

from prompt_refiner.types import OptimizationResult


def _format_iterations(result: OptimizationResult) -> list[str]:
    lines = ["\n## Iterations\n\n"]
    lines.append("| # | Overall | Quality | Structure | Hallucination | Improvement | Cost |\n")
    lines.append("|---|---|---|---|---|---|---|\n")
    for iteration in result.iteration_history or []:
        after = iteration.evaluation.after_score
        marker = " ✓" if iteration.targets_met else ""
        lines.append(
            f"| {iteration.iteration}{marker} | {after.overall:.2f} | "
            f"{after.response_quality:.2f} | {after.structure_compliance:.2f} | "
            f"{after.hallucination_rate:.2f} | {iteration.improvement:+.1f}% | "
            f"{iteration.cost:.2f} |\n"
        )
    reason = result.stopping_reason.value if result.stopping_reason else "interrupted"
    lines.append(f"\n**Stopping reason:** {reason}\n")
    lines.append(f"**Total cost:** {result.total_cost:.2f}\n")
    return lines


def _format_candidate(result: OptimizationResult) -> list[str]:
    candidate = result.best_candidate
    if candidate is None:
        return ["\n## Selected Candidate\n\nNo candidate was selected.\n"]

    lines = [
        "\n## Selected Candidate\n\n",
        f"- **ID:** {candidate.id}\n",
        f"- **Technique:** {candidate.metadata.technique.value}\n",
        f"- **Generation:** {candidate.metadata.generation}\n",
        f"- **Score:** {candidate.score:.2f}\n",
        f"- **Diversity:** {candidate.diversity:.2f}\n",
        f"- **Reasoning:** {candidate.metadata.reasoning}\n",
    ]
    if candidate.test_results:
        passed = sum(1 for r in candidate.test_results if r.passed)
        lines.append(f"\n### Test Results ({passed}/{len(candidate.test_results)} passed)\n\n")
        for test in candidate.test_results:
            status = "PASS" if test.passed else "FAIL"
            lines.append(f"- [{status}] {test.score:.2f} - {test.input}\n")
    return lines


async def save_optimization_report(result: OptimizationResult, output_dir: str) -> Path:
    """
    Save detailed optimization report to a markdown file.

    Args:
        result: Optimization result
        output_dir: Directory to save the report

    Returns:
        Path to saved report file
    """
    report_file = Path(output_dir) / "optimization_report.md"
    report_file.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "# Prompt Optimization Report\n\n",
        f"**Generated:** {result.timestamp.strftime('%Y-%m-%d %H:%M:%S')}\n",
        f"**Mode:** {result.mode}\n",
        f"**Confidence:** {result.confidence:.2f}\n",
        f"\n## Explanation\n\n{result.explanation}\n",
    ]

    if result.iteration_history is not None:
        lines.extend(_format_iterations(result))
    elif result.mode == "single_shot":
        lines.extend(_format_candidate(result))

    if result.insights is not None:
        lines.append("\n## Pattern Insights\n\n")
        lines.append(f"- **Common patterns:** {', '.join(result.insights.common_patterns)}\n")
        lines.append(f"- **Recommended structure:** {result.insights.recommended_structure}\n")

    lines.append(f"\n## Changes ({len(result.changes)})\n\n")
    for change in result.changes:
        lines.append(f"- **{change.type}** (line {change.line}): {change.reason}\n")
        if change.original:
            lines.append(f"  - before: `{change.original}`\n")
        if change.optimized:
            lines.append(f"  - after: `{change.optimized}`\n")

    lines.append("\n## Original Prompt\n\n```\n")
    lines.append(result.original_content)
    lines.append("\n```\n\n## Optimized Prompt\n\n```\n")
    lines.append(result.optimized_content)
    lines.append("\n```\n")

    async with aiofiles.open(report_file, "w") as f:
        await f.write("".join(lines))

    print(f"\nDetailed report saved to: {report_file}")
    return report_file
