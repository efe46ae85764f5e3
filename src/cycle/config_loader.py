"""Load, validate, and hot-reload the Peri cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an edit; no restart required.

Usage::

    from src.cycle.config_loader import get_cycle_config

    config = get_cycle_config()
    config.defaults.cycle_length_days      # 28
    config.ovulation.luteal_phase_days     # 14
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger("peri.cycle.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class DefaultLengths:
    """Fallback lengths used when neither settings nor history provide one."""

    cycle_length_days: int = 28
    period_length_days: int = 5


@dataclass
class OvulationConfig:
    """Fixed offsets around the predicted ovulation day."""

    luteal_phase_days: int = 14
    fertile_days_before: int = 5
    fertile_days_after: int = 1


@dataclass
class CycleLengthConfig:
    """Plausibility bounds for observed cycle lengths."""

    min_cycle_days: int = 21
    max_cycle_days: int = 45
    irregular_std_days: float = 7.0


@dataclass
class ConfidenceConfig:
    """How many observed cycles earn each confidence level."""

    high_min_cycles: int = 3
    medium_min_cycles: int = 1


@dataclass
class CycleConfig:
    """Complete, validated cycle engine configuration.

    This is the single in-memory representation of cycle_config.yaml.
    The prediction engine and phase classifier both read from this object.

    Attributes:
        version:      Config schema version string.
        defaults:     Fallback cycle and period lengths.
        ovulation:    Luteal length and fertile window offsets.
        cycle_length: Bounds used to flag short/long/irregular histories.
        confidence:   Cycle-count thresholds for confidence levels.
    """

    version: str
    defaults: DefaultLengths
    ovulation: OvulationConfig
    cycle_length: CycleLengthConfig
    confidence: ConfidenceConfig
    _raw: dict = field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    import yaml  # pyyaml

    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleConfig:
    """Validate the raw YAML dict and construct a CycleConfig.

    Missing sections fall back to the dataclass defaults; present values
    must be positive numbers.

    Raises:
        ConfigValidationError: If any value is missing a sane type or range.
    """
    errors: list[str] = []

    def _positive_int(section: dict, key: str, path: str, default: int) -> int:
        value = section.get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be an integer, got {value!r}")
            return default
        if number <= 0:
            errors.append(f"{path}.{key} = {number} must be positive")
        return number

    def _non_negative_int(section: dict, key: str, path: str, default: int) -> int:
        value = section.get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be an integer, got {value!r}")
            return default
        if number < 0:
            errors.append(f"{path}.{key} = {number} must not be negative")
        return number

    def _positive_float(section: dict, key: str, path: str, default: float) -> float:
        value = section.get(key, default)
        try:
            number = float(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be a number, got {value!r}")
            return default
        if number <= 0:
            errors.append(f"{path}.{key} = {number} must be positive")
        return number

    def _section(parent: dict, key: str, path: str) -> dict:
        value = parent.get(key) or {}
        if not isinstance(value, dict):
            errors.append(f"'{path}' must be a mapping")
            return {}
        return value

    version = str(raw.get("version", "1.0"))

    # ── Defaults ──
    d_raw = _section(raw, "defaults", "defaults")
    defaults = DefaultLengths(
        cycle_length_days=_positive_int(d_raw, "cycle_length_days", "defaults", 28),
        period_length_days=_positive_int(d_raw, "period_length_days", "defaults", 5),
    )

    # ── Ovulation ──
    ov_raw = _section(raw, "ovulation", "ovulation")
    fw_raw = _section(ov_raw, "fertile_window", "ovulation.fertile_window")
    ovulation = OvulationConfig(
        luteal_phase_days=_positive_int(ov_raw, "luteal_phase_days", "ovulation", 14),
        fertile_days_before=_positive_int(
            fw_raw, "days_before_ovulation", "ovulation.fertile_window", 5
        ),
        fertile_days_after=_non_negative_int(
            fw_raw, "days_after_ovulation", "ovulation.fertile_window", 1
        ),
    )

    # ── Cycle length bounds ──
    cl_raw = _section(raw, "cycle_length", "cycle_length")
    cycle_length = CycleLengthConfig(
        min_cycle_days=_positive_int(cl_raw, "min_cycle_days", "cycle_length", 21),
        max_cycle_days=_positive_int(cl_raw, "max_cycle_days", "cycle_length", 45),
        irregular_std_days=_positive_float(cl_raw, "irregular_std_days", "cycle_length", 7.0),
    )
    if cycle_length.min_cycle_days >= cycle_length.max_cycle_days:
        errors.append(
            f"cycle_length.min_cycle_days ({cycle_length.min_cycle_days}) must be below "
            f"max_cycle_days ({cycle_length.max_cycle_days})"
        )

    if defaults.cycle_length_days <= ovulation.luteal_phase_days:
        errors.append(
            f"defaults.cycle_length_days ({defaults.cycle_length_days}) must exceed "
            f"ovulation.luteal_phase_days ({ovulation.luteal_phase_days})"
        )

    # ── Confidence ──
    c_raw = _section(raw, "confidence", "confidence")
    confidence = ConfidenceConfig(
        high_min_cycles=_positive_int(c_raw, "high_min_cycles", "confidence", 3),
        medium_min_cycles=_positive_int(c_raw, "medium_min_cycles", "confidence", 1),
    )
    if confidence.medium_min_cycles > confidence.high_min_cycles:
        logger.warning(
            "confidence.medium_min_cycles (%d) exceeds high_min_cycles (%d); "
            "'medium' will never be reported.",
            confidence.medium_min_cycles,
            confidence.high_min_cycles,
        )

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleConfig(
        version=version,
        defaults=defaults,
        ovulation=ovulation,
        cycle_length=cycle_length,
        confidence=confidence,
        _raw=raw,
    )


def load_cycle_config(path: Path | None = None) -> CycleConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.

    Returns:
        Validated CycleConfig instance.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleConfig:
    """Return the global CycleConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_cycle_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config()
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleConfig:
    """Reload the cycle config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_cycle_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info(
        "Reloaded cycle config: %s → %s",
        old_version,
        new_config.version,
    )
    return new_config
