from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from tier_engine.domain.algorithm import (
    AlgorithmComparison,
    AlgorithmResult,
    ClosedFormMetadata,
    EloMetadata,
    FallbackMetadata,
    HybridMetadata,
    JenksMetadata,
    KMeansMetadata,
)
from tier_engine.domain.confidence import ConfidenceReport
from tier_engine.domain.recommendation import AlgorithmPreset, RecommendationComparison, ThresholdValidation
from tier_engine.domain.tier import TierDefinition, TierPreset, TierSummary

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def print_error(message: str) -> None:
    err_console.print(f"[red bold]Error:[/red bold] {message}")


def _format_boundaries(boundaries: Sequence[int]) -> str:
    return ", ".join(str(b) for b in boundaries)


def print_tiers(tiers: Sequence[TierDefinition]) -> None:
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Tier")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Size", justify="right")
    for tier in tiers:
        table.add_row(tier.label, str(tier.start_position), str(tier.end_position), str(tier.size))
    console.print(table)


def print_boundaries(algorithm: str, list_size: int, boundaries: Sequence[int], tiers: Sequence[TierDefinition]) -> None:
    console.print(f"[bold]{algorithm}[/bold] tiers for {list_size} items: [{_format_boundaries(boundaries)}]")
    print_tiers(tiers)


def _metadata_lines(result: AlgorithmResult) -> list[str]:
    match result.metadata:
        case ClosedFormMetadata(tier_sizes=sizes):
            return [f"Tier sizes: {', '.join(str(s) for s in sizes)}"]
        case KMeansMetadata() as m:
            status = "converged" if m.converged else "not converged"
            return [
                f"Iterations: {m.iterations} ({status})",
                f"Silhouette: {m.silhouette_score:.3f}",
                f"WCSS: {m.wcss:.2f}",
            ]
        case JenksMetadata() as m:
            return [f"GVF: {m.gvf:.3f}", f"Data points: {m.data_points}"]
        case EloMetadata() as m:
            lines = [
                f"Items rated: {m.item_count}",
                f"Comparisons: {m.total_comparisons}",
                f"Rating range: {m.rating_range:.1f}",
            ]
            if not m.has_enough_data:
                lines.append("[yellow]Not enough comparisons for a stable ranking[/yellow]")
            return lines
        case HybridMetadata() as m:
            lines = [
                f"Combined: {', '.join(a.value for a in m.algorithms)}",
                f"Agreement: {m.agreement:.1f}%",
            ]
            lines.extend(f"[red]Failed:[/red] {failure}" for failure in m.failures)
            return lines
        case FallbackMetadata(reason=reason):
            return [f"[yellow]Fallback:[/yellow] {reason}"]
    return []


def print_algorithm_result(result: AlgorithmResult, tiers: Sequence[TierDefinition]) -> None:
    console.print(
        f"[bold green]{result.algorithm.value}[/bold green] "
        f"[{_format_boundaries(result.boundaries)}] confidence {result.confidence}%"
    )
    for line in _metadata_lines(result):
        console.print(f"  {line}")
    print_tiers(tiers)


def print_comparison(comparison: AlgorithmComparison) -> None:
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Algorithm")
    table.add_column("Boundaries")
    table.add_column("Confidence", justify="right")
    table.add_column("Time (ms)", justify="right")
    for result in comparison.results:
        name = f"[bold]{result.algorithm.value}[/bold]" if result.algorithm is comparison.best else result.algorithm.value
        table.add_row(
            name,
            _format_boundaries(result.boundaries),
            f"{result.confidence}%",
            f"{result.execution_time * 1000:.1f}",
        )
    console.print(table)
    console.print(f"Agreement: {comparison.agreement:.1f}%")
    console.print(f"Best: [bold]{comparison.best.value}[/bold]")
    console.print(comparison.recommendation)
    for failure in comparison.failures:
        console.print(f"  [red]Failed:[/red] {failure}")


def print_recommendations(comparison: RecommendationComparison) -> None:
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Preset")
    table.add_column("Confidence", justify="right")
    table.add_column("Boundaries")
    for rec in comparison.recommendations:
        table.add_row(rec.preset.name, f"{rec.confidence}%", _format_boundaries(rec.boundaries))
    console.print(table)

    top = comparison.top_recommendation
    console.print(f"[bold green]Recommended:[/bold green] {top.preset.name}")
    console.print(f"  {top.reasoning}")
    for pro in top.pros:
        console.print(f"  [green]+[/green] {pro}")
    for con in top.cons:
        console.print(f"  [red]-[/red] {con}")
    for note in comparison.comparison_notes:
        console.print(f"  {note}")


def print_validation(validation: ThresholdValidation) -> None:
    if validation.valid:
        console.print("[bold green]Boundaries are valid[/bold green]")
    else:
        console.print("[bold red]Boundaries are invalid[/bold red]")
    for warning in validation.warnings:
        console.print(f"  [yellow]![/yellow] {warning}")
    for suggestion in validation.suggestions:
        console.print(f"  Suggestion: {suggestion}")


def print_tier_summary(summary: TierSummary) -> None:
    console.print(f"Tiered {summary.tiered_items}/{summary.total_items} items, balance {summary.balance_score}")
    if summary.dominant_tier is not None:
        console.print(f"Largest tier: {summary.dominant_tier.label}")


def print_confidence_report(report: ConfidenceReport, tiers: Sequence[TierDefinition]) -> None:
    console.print(f"[bold]Overall confidence:[/bold] {report.overall_confidence}%")

    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Tier")
    table.add_column("Confidence", justify="right")
    for tier in tiers:
        score = report.tier_confidences.get(tier.id)
        table.add_row(tier.label, f"{score}%" if score is not None else "-")
    console.print(table)

    console.print(f"Low confidence items: {report.low_confidence_count}")
    console.print(f"Boundary items: {report.boundary_item_count}")
    for recommendation in report.recommendations:
        console.print(f"  {recommendation}")


def print_presets(builtin: Sequence[AlgorithmPreset], user: Sequence[TierPreset]) -> None:
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Preset")
    table.add_column("Algorithm")
    table.add_column("Source")
    for preset in builtin:
        table.add_row(preset.id, preset.algorithm.value, "built-in")
    for tier_preset in user:
        table.add_row(tier_preset.name, tier_preset.algorithm.value, f"tiers.toml ({tier_preset.tier_count} tiers)")
    console.print(table)
