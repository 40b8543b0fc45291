"""Display optimization results to console."""

from prompt_refiner.types import OptimizationResult


def display_results(result: OptimizationResult) -> None:
    """
    Display optimization results to console.

    Args:
        result: Optimization result to summarise
    """
    print("\n" + "=" * 70)
    print("OPTIMIZATION COMPLETE!")
    print("=" * 70)
    print(f"\nMode: {result.mode}")
    print(f"Confidence: {result.confidence:.2f}")
    print(f"Changes: {len(result.changes)}")

    if result.iteration_history is not None:
        reason = result.stopping_reason.value if result.stopping_reason else "interrupted"
        print(f"Iterations: {len(result.iteration_history)} (stopped: {reason})")
        print(f"Total cost: {result.total_cost:.2f}")
        print("\nIteration Progress:")
        for iteration in result.iteration_history:
            after = iteration.evaluation.after_score.overall
            marker = " ✓" if iteration.targets_met else ""
            change = f"{iteration.improvement:+.1f}%"
            print(f"  Iter {iteration.iteration}: {after:.2f} ({change}){marker}")

    if result.best_candidate is not None:
        candidate = result.best_candidate
        print(
            f"\nBest candidate: {candidate.id} ({candidate.metadata.technique.value}, "
            f"score={candidate.score:.2f}, diversity={candidate.diversity:.2f})"
        )

    print(f"\nExplanation: {result.explanation}")
