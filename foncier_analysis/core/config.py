"""Analysis configuration loaded from environment variables.

All configuration values have defaults matching the current deployment
(UTM zone 31N documents, GeoJSON datasets under ``public/data_files``).
Azure Functions app settings (or ``local.settings.json`` for local dev)
are the source of truth.

``from_env()`` raises ``ConfigValidationError`` if any value is out of
its valid range, so bad configuration is caught at startup rather than
in the middle of an analysis.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from foncier_analysis.core.constants import (
    COORDINATE_DEDUP_TOLERANCE,
    DEFAULT_LAYERS_DATA_DIR,
    DEFAULT_SOURCE_CRS,
    DEFAULT_TARGET_CRS,
    RING_CLOSURE_TOLERANCE,
)
from foncier_analysis.core.exceptions import PermanentError

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


class ConfigValidationError(PermanentError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Immutable analysis configuration.

    Loaded once at function startup and threaded through the pipeline.

    Attributes:
        layers_data_dir: Directory containing the reference dataset files.
        source_crs: CRS of the incoming parcel points and of datasets that
            declare no CRS of their own.
        target_crs: CRS of every coordinate in the produced report.
        dedup_tolerance: Tolerance for consecutive-duplicate removal.
        closure_tolerance: Tolerance for re-closing reprojected rings.
        layer_cache_enabled: Keep loaded layers in memory across requests.
        layer_load_workers: Number of threads used to load layers (1 = sequential).
    """

    layers_data_dir: str = DEFAULT_LAYERS_DATA_DIR
    source_crs: str = DEFAULT_SOURCE_CRS
    target_crs: str = DEFAULT_TARGET_CRS
    dedup_tolerance: float = COORDINATE_DEDUP_TOLERANCE
    closure_tolerance: float = RING_CLOSURE_TOLERANCE
    layer_cache_enabled: bool = True
    layer_load_workers: int = 1

    @classmethod
    def from_env(cls) -> AnalysisConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range, a required
                string is empty, or a boolean flag is not recognised.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``LAYER_LOAD_WORKERS=abc``).
        """
        config = cls(
            layers_data_dir=os.getenv("LAYERS_DATA_DIR", DEFAULT_LAYERS_DATA_DIR),
            source_crs=os.getenv("SOURCE_CRS", DEFAULT_SOURCE_CRS),
            target_crs=os.getenv("TARGET_CRS", DEFAULT_TARGET_CRS),
            dedup_tolerance=float(
                os.getenv("COORDINATE_DEDUP_TOLERANCE", str(COORDINATE_DEDUP_TOLERANCE))
            ),
            closure_tolerance=float(
                os.getenv("RING_CLOSURE_TOLERANCE", str(RING_CLOSURE_TOLERANCE))
            ),
            layer_cache_enabled=_parse_bool(
                "LAYER_CACHE_ENABLED", os.getenv("LAYER_CACHE_ENABLED", "true")
            ),
            layer_load_workers=int(os.getenv("LAYER_LOAD_WORKERS", "1")),
        )
        _validate(config)
        return config


def _parse_bool(key: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigValidationError(key, raw, "must be a boolean (true/false)")


def _validate(config: AnalysisConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.layers_data_dir:
        raise ConfigValidationError(
            "LAYERS_DATA_DIR",
            config.layers_data_dir,
            "must not be empty",
        )

    if not config.source_crs:
        raise ConfigValidationError("SOURCE_CRS", config.source_crs, "must not be empty")

    if not config.target_crs:
        raise ConfigValidationError("TARGET_CRS", config.target_crs, "must not be empty")

    if config.dedup_tolerance < 0:
        raise ConfigValidationError(
            "COORDINATE_DEDUP_TOLERANCE",
            config.dedup_tolerance,
            "must be >= 0",
        )

    if config.closure_tolerance < 0:
        raise ConfigValidationError(
            "RING_CLOSURE_TOLERANCE",
            config.closure_tolerance,
            "must be >= 0",
        )

    if config.layer_load_workers < 1:
        raise ConfigValidationError(
            "LAYER_LOAD_WORKERS",
            config.layer_load_workers,
            "must be >= 1",
        )
