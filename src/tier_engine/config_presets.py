import tomllib
from pathlib import Path
from typing import Any

from tier_engine.domain.algorithm import CLOSED_FORM_ALGORITHMS, Algorithm
from tier_engine.domain.algorithm_config import ClosedFormConfig
from tier_engine.domain.recommendation import AlgorithmPreset
from tier_engine.domain.tier import TierPreset

_CONFIG_FILENAME = "tiers.toml"


class PresetConfigError(Exception):
    """Raised when a tier preset is invalid or missing."""


# -- Validation --------------------------------------------------------------


def validate_preset(preset: TierPreset) -> None:
    context = f"Preset '{preset.name}'"
    if preset.tier_count < 1:
        raise PresetConfigError(f"{context}: tier_count must be >= 1, got {preset.tier_count}")
    if preset.labels and len(preset.labels) != preset.tier_count:
        raise PresetConfigError(f"{context}: expected {preset.tier_count} labels, got {len(preset.labels)}")
    if preset.ratio is not None and preset.ratio <= 0:
        raise PresetConfigError(f"{context}: ratio must be > 0, got {preset.ratio}")
    if preset.percentiles is not None:
        if any(not 0 < p < 100 for p in preset.percentiles):
            raise PresetConfigError(f"{context}: percentiles must lie strictly between 0 and 100")
        if list(preset.percentiles) != sorted(set(preset.percentiles)):
            raise PresetConfigError(f"{context}: percentiles must be strictly increasing")
        if len(preset.percentiles) != preset.tier_count - 1:
            msg = f"{context}: expected {preset.tier_count - 1} percentiles for {preset.tier_count} tiers"
            raise PresetConfigError(msg)


# -- Parsing -----------------------------------------------------------------


def _require_field(raw: dict[str, Any], field: str, context: str) -> Any:
    if field not in raw:
        raise PresetConfigError(f"{context}: missing required field '{field}'")
    return raw[field]


def parse_preset(name: str, raw: dict[str, Any]) -> TierPreset:
    context = f"Preset '{name}'"

    raw_algorithm = _require_field(raw, "algorithm", context)
    try:
        algorithm = Algorithm(raw_algorithm)
    except ValueError:
        raise PresetConfigError(f"{context}: invalid algorithm '{raw_algorithm}'")
    if algorithm not in CLOSED_FORM_ALGORITHMS:
        raise PresetConfigError(f"{context}: algorithm '{raw_algorithm}' needs input data and cannot be a preset")

    tier_count: int = _require_field(raw, "tier_count", context)
    raw_percentiles = raw.get("percentiles")
    raw_ratio = raw.get("ratio")

    preset = TierPreset(
        name=name,
        algorithm=algorithm,
        tier_count=tier_count,
        labels=tuple(raw.get("labels", ())),
        percentiles=tuple(float(p) for p in raw_percentiles) if raw_percentiles is not None else None,
        ratio=float(raw_ratio) if raw_ratio is not None else None,
        description=raw.get("description", ""),
    )

    validate_preset(preset)
    return preset


def closed_form_config(preset: TierPreset) -> ClosedFormConfig:
    if preset.ratio is None:
        return ClosedFormConfig(tier_count=preset.tier_count, percentiles=preset.percentiles)
    return ClosedFormConfig(tier_count=preset.tier_count, ratio=preset.ratio, percentiles=preset.percentiles)


def to_algorithm_preset(preset: TierPreset) -> AlgorithmPreset:
    """The recommender's view of a stored preset; the preset name doubles as its id."""
    return AlgorithmPreset(
        id=preset.name,
        name=preset.name,
        algorithm=preset.algorithm,
        description=preset.description,
        ratio=preset.ratio,
        percentiles=preset.percentiles,
    )


# -- TOML loading ------------------------------------------------------------


def _read_presets(config_dir: Path) -> dict[str, Any] | None:
    toml_path = config_dir / _CONFIG_FILENAME
    if not toml_path.exists():
        return None

    with toml_path.open("rb") as f:
        data = tomllib.load(f)

    return data.get("presets")


def load_preset(name: str, config_dir: Path) -> TierPreset:
    if not (config_dir / _CONFIG_FILENAME).exists():
        raise PresetConfigError(f"{_CONFIG_FILENAME} not found in {config_dir}")

    presets = _read_presets(config_dir)
    if presets is None:
        raise PresetConfigError(f"No [presets] section in {_CONFIG_FILENAME}")

    if name not in presets:
        raise PresetConfigError(f"Preset '{name}' not found in {_CONFIG_FILENAME}")

    return parse_preset(name, presets[name])


def load_all_presets(config_dir: Path) -> list[TierPreset]:
    presets = _read_presets(config_dir) or {}
    return [parse_preset(name, presets[name]) for name in sorted(presets)]


def list_presets(config_dir: Path) -> list[str]:
    presets = _read_presets(config_dir)
    if presets is None:
        return []

    return sorted(presets.keys())
