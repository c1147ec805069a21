from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer

from tier_engine.cli._input import InputError, TierInput, load_input
from tier_engine.cli._logging import configure_logging
from tier_engine.cli._output import (
    console,
    print_algorithm_result,
    print_boundaries,
    print_comparison,
    print_confidence_report,
    print_error,
    print_presets,
    print_recommendations,
    print_tier_summary,
    print_validation,
)
from tier_engine.config import EngineSettings, create_config, load_engine_settings
from tier_engine.config_presets import (
    PresetConfigError,
    closed_form_config,
    load_all_presets,
    load_preset,
    to_algorithm_preset,
)
from tier_engine.domain.algorithm import Algorithm
from tier_engine.domain.algorithm_config import ClosedFormConfig
from tier_engine.domain.recommendation import ListCharacteristics
from tier_engine.domain.result import Err, Ok
from tier_engine.services.deadline import DeadlineExceededError
from tier_engine.services.runner import calculate_boundaries, compare_all_algorithms, try_run_algorithm
from tier_engine.services.threshold_recommender import ALGORITHM_PRESETS, ThresholdRecommender, recommend_tier_count
from tier_engine.services.tier_assignment import (
    assign_tiers_to_items,
    calculate_tier_summary,
    create_tiers_from_boundaries,
)

app = typer.Typer(name="tiers", help="Tier classification engine: split ranked lists into tiers")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable DEBUG logging")] = False,
) -> None:
    """Tier classification engine: split ranked lists into tiers."""
    configure_logging(verbose=verbose)
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


_ListSizeArg = Annotated[int, typer.Argument(help="Number of positions in the ranked list", min=0)]
_InputArg = Annotated[Path, typer.Argument(help="JSON file with positions, comparisons and items")]
_TiersOpt = Annotated[int | None, typer.Option("--tiers", "-k", help="Number of tiers")]
_ListSizeOpt = Annotated[int | None, typer.Option("--list-size", "-n", help="Override the list size from the input")]
_ConfigDirOpt = Annotated[
    Path | None, typer.Option("--config-dir", help="Directory holding tiers.yaml and tiers.toml (default: cwd)")
]


def _config_dir(config_dir: Path | None) -> Path:
    return config_dir if config_dir is not None else Path.cwd()


def _load_settings(config_dir: Path | None) -> EngineSettings:
    try:
        return load_engine_settings(create_config(yaml_path=str(_config_dir(config_dir) / "tiers.yaml")))
    except ValueError as e:
        print_error(f"invalid configuration: {e}")
        raise typer.Exit(code=1) from e


def _load_data(path: Path, list_size: int | None) -> tuple[TierInput, int]:
    try:
        data = load_input(path)
    except InputError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    return data, list_size if list_size is not None else data.infer_list_size()


@app.command()
def boundaries(
    list_size: _ListSizeArg,
    tiers: _TiersOpt = None,
    algorithm: Annotated[Algorithm, typer.Option("--algorithm", "-a", help="Boundary algorithm")] = Algorithm.EQUAL,
    preset: Annotated[str | None, typer.Option("--preset", help="Named preset from tiers.toml")] = None,
    boundary: Annotated[list[int] | None, typer.Option("--boundary", "-b", help="Custom boundary (repeatable)")] = None,
    config_dir: _ConfigDirOpt = None,
) -> None:
    """Compute tier boundaries from the list size alone."""
    settings = _load_settings(config_dir)
    labels: tuple[str, ...] = ()
    if preset is not None:
        try:
            tier_preset = load_preset(preset, _config_dir(config_dir))
        except PresetConfigError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        algorithm = tier_preset.algorithm
        tier_count = tiers if tiers is not None else tier_preset.tier_count
        params = replace(closed_form_config(tier_preset), tier_count=tier_count)
        labels = tier_preset.labels if tier_count == tier_preset.tier_count else ()
    else:
        tier_count = tiers if tiers is not None else settings.tier_count
        if boundary:
            algorithm = Algorithm.CUSTOM
            tier_count = tiers if tiers is not None else len(boundary) - 1
            params = ClosedFormConfig(tier_count=tier_count, boundaries=tuple(boundary))
        else:
            params = settings.config_for(algorithm, tier_count)

    result = calculate_boundaries(list_size, tier_count, algorithm, params)
    print_boundaries(preset or algorithm.value, list_size, result, create_tiers_from_boundaries(result, labels or None))


@app.command()
def run(
    algorithm: Annotated[Algorithm, typer.Argument(help="Algorithm to run")],
    input_file: _InputArg,
    tiers: _TiersOpt = None,
    list_size: _ListSizeOpt = None,
    config_dir: _ConfigDirOpt = None,
) -> None:
    """Run one algorithm against the comparisons and positions in an input file."""
    settings = _load_settings(config_dir)
    data, size = _load_data(input_file, list_size)
    try:
        outcome = try_run_algorithm(
            algorithm,
            size,
            comparisons=data.comparisons,
            positions=data.positions,
            config=settings.config_for(algorithm, tiers),
            deadline=settings.deadline(),
        )
    except DeadlineExceededError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    match outcome:
        case Ok(result):
            print_algorithm_result(result, create_tiers_from_boundaries(result.boundaries))
        case Err(error):
            print_error(f"{error.algorithm.value} failed: {error.message}")
            raise typer.Exit(code=1)


@app.command()
def compare(
    input_file: _InputArg,
    tiers: _TiersOpt = None,
    list_size: _ListSizeOpt = None,
    workers: Annotated[int | None, typer.Option("--workers", "-w", help="Thread pool size", min=1)] = None,
    config_dir: _ConfigDirOpt = None,
) -> None:
    """Run ELO, k-means, Jenks, percentile and pyramid side by side."""
    settings = _load_settings(config_dir)
    data, size = _load_data(input_file, list_size)
    try:
        comparison = compare_all_algorithms(
            size,
            comparisons=data.comparisons,
            positions=data.positions,
            tier_count=tiers if tiers is not None else settings.tier_count,
            deadline=settings.deadline(),
            max_workers=workers if workers is not None else settings.max_workers,
        )
    except DeadlineExceededError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_comparison(comparison)


@app.command()
def recommend(
    list_size: _ListSizeArg,
    filled: Annotated[list[int] | None, typer.Option("--filled", "-f", help="Filled position (repeatable)")] = None,
    tiers: _TiersOpt = None,
    config_dir: _ConfigDirOpt = None,
) -> None:
    """Rank the built-in and tiers.toml presets for a list."""
    try:
        user_presets = load_all_presets(_config_dir(config_dir))
    except PresetConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    characteristics = ListCharacteristics(
        list_size=list_size,
        filled_positions=tuple(filled if filled is not None else range(list_size)),
        tier_count=tiers if tiers is not None else recommend_tier_count(list_size),
    )
    presets = (*ALGORITHM_PRESETS, *(to_algorithm_preset(p) for p in user_presets))
    print_recommendations(ThresholdRecommender(characteristics, presets).compare_recommendations())


@app.command()
def validate(
    list_size: _ListSizeArg,
    boundary: Annotated[list[int], typer.Argument(help="Boundaries, e.g. 0 5 20 50")],
) -> None:
    """Check custom boundaries; exits 1 when any problem is reported."""
    characteristics = ListCharacteristics(
        list_size=list_size,
        filled_positions=tuple(range(list_size)),
        tier_count=max(1, len(boundary) - 1),
    )
    validation = ThresholdRecommender(characteristics).validate_custom_thresholds(boundary)
    print_validation(validation)
    if not validation.valid:
        raise typer.Exit(code=1)


@app.command("tier-count")
def tier_count(list_size: _ListSizeArg) -> None:
    """Suggest a tier count for a list size."""
    console.print(f"Recommended tiers for {list_size} items: [bold]{recommend_tier_count(list_size)}[/bold]")


@app.command()
def confidence(
    input_file: _InputArg,
    algorithm: Annotated[Algorithm, typer.Option("--algorithm", "-a", help="Algorithm placing the tiers")] = (
        Algorithm.PERCENTILE
    ),
    tiers: _TiersOpt = None,
    list_size: _ListSizeOpt = None,
    config_dir: _ConfigDirOpt = None,
) -> None:
    """Score how firmly each item in the input sits in its tier."""
    settings = _load_settings(config_dir)
    data, size = _load_data(input_file, list_size)
    if not data.items:
        print_error(f"{input_file} has no items to score")
        raise typer.Exit(code=1)

    try:
        outcome = try_run_algorithm(
            algorithm,
            size,
            comparisons=data.comparisons,
            positions=data.positions or tuple(float(item.position) for item in data.items),
            config=settings.config_for(algorithm, tiers),
            deadline=settings.deadline(),
        )
    except DeadlineExceededError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    match outcome:
        case Err(error):
            print_error(f"{error.algorithm.value} failed: {error.message}")
            raise typer.Exit(code=1)
        case Ok(result):
            tier_defs = create_tiers_from_boundaries(result.boundaries)
            tiered = assign_tiers_to_items(data.items, tier_defs)
            scorer = settings.confidence.scorer()
            scorer.set_comparisons(data.comparisons)
            scorer.set_algorithm_results([result])
            print_tier_summary(calculate_tier_summary(tier_defs, tiered, size))
            print_confidence_report(scorer.generate_report(tiered, tier_defs), tier_defs)


@app.command()
def presets(config_dir: _ConfigDirOpt = None) -> None:
    """List built-in presets and those defined in tiers.toml."""
    try:
        user_presets = load_all_presets(_config_dir(config_dir))
    except PresetConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_presets(ALGORITHM_PRESETS, user_presets)
