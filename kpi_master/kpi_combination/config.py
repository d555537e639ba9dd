# -*- coding: utf-8 -*-
"""
KPI Combination Service Configuration

Centralized configuration for the KPI combination engine covering:
- Outlier detection parameters (z-score threshold, minimum samples)
- Quality scoring behaviour (relevance mode, anomaly magnitude limit)
- Compatibility switches for legacy output reproduction
- Processing limits and provenance
- Logging

All settings can be overridden via environment variables with the
``KPI_COMB_`` prefix (e.g. ``KPI_COMB_ZSCORE_THRESHOLD``).

Example:
    >>> from kpi_master.kpi_combination.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.zscore_threshold, cfg.relevance_mode)

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "KPI_COMB_"

RELEVANCE_LINEAGE = "lineage"
RELEVANCE_ID_PATTERN = "id_pattern"

_RELEVANCE_MODES = frozenset({RELEVANCE_LINEAGE, RELEVANCE_ID_PATTERN})


# ---------------------------------------------------------------------------
# KPICombinationConfig
# ---------------------------------------------------------------------------


@dataclass
class KPICombinationConfig:
    """Complete configuration for the KPI combination engine.

    Attributes:
        zscore_threshold: Absolute z-score above which a value is an outlier.
        min_outlier_samples: Minimum valid values before a field is tested.
        relevance_mode: ``lineage`` selects relevant fields from the
            contributing divisions; ``id_pattern`` reproduces the legacy
            lexical inference from the record id.
        legacy_outlier_lookup: Reproduce the legacy lookup that never
            associates outlier flags with output records.
        anomaly_magnitude_limit: Negative values beyond this magnitude
            count as numeric anomalies in confidence scoring.
        max_records: Maximum raw items accepted per run.
        enable_provenance: Whether runs are recorded in the provenance chain.
        genesis_hash: Seed string for the provenance chain.
        log_level: Logging level for the combination engine.
    """

    # -- Outlier detection ---------------------------------------------------
    zscore_threshold: float = 3.0
    min_outlier_samples: int = 3

    # -- Quality scoring -----------------------------------------------------
    relevance_mode: str = RELEVANCE_LINEAGE
    anomaly_magnitude_limit: float = 999_999_999.0

    # -- Compatibility -------------------------------------------------------
    legacy_outlier_lookup: bool = False

    # -- Processing ----------------------------------------------------------
    max_records: int = 1_000_000
    enable_provenance: bool = True
    genesis_hash: str = "kpi-master-combination-genesis"

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.relevance_mode not in _RELEVANCE_MODES:
            raise ValueError(
                f"relevance_mode must be one of {sorted(_RELEVANCE_MODES)}, "
                f"got {self.relevance_mode!r}"
            )
        if self.min_outlier_samples < 1:
            raise ValueError("min_outlier_samples must be >= 1")
        if self.zscore_threshold <= 0:
            raise ValueError("zscore_threshold must be > 0")
        if self.max_records < 1:
            raise ValueError("max_records must be >= 1")

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> KPICombinationConfig:
        """Build a KPICombinationConfig from environment variables.

        Every field can be overridden via ``KPI_COMB_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        An unknown relevance mode falls back to the default.

        Returns:
            Populated KPICombinationConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        relevance_mode = _str("RELEVANCE_MODE", cls.relevance_mode).lower()
        if relevance_mode not in _RELEVANCE_MODES:
            logger.warning(
                "Invalid relevance mode for %sRELEVANCE_MODE=%s, using default %s",
                prefix, relevance_mode, cls.relevance_mode,
            )
            relevance_mode = cls.relevance_mode

        config = cls(
            # Outlier detection
            zscore_threshold=_float("ZSCORE_THRESHOLD", cls.zscore_threshold),
            min_outlier_samples=_int(
                "MIN_OUTLIER_SAMPLES", cls.min_outlier_samples,
            ),
            # Quality scoring
            relevance_mode=relevance_mode,
            anomaly_magnitude_limit=_float(
                "ANOMALY_MAGNITUDE_LIMIT", cls.anomaly_magnitude_limit,
            ),
            # Compatibility
            legacy_outlier_lookup=_bool(
                "LEGACY_OUTLIER_LOOKUP", cls.legacy_outlier_lookup,
            ),
            # Processing
            max_records=_int("MAX_RECORDS", cls.max_records),
            enable_provenance=_bool(
                "ENABLE_PROVENANCE", cls.enable_provenance,
            ),
            genesis_hash=_str("GENESIS_HASH", cls.genesis_hash),
            # Logging
            log_level=_str("LOG_LEVEL", cls.log_level),
        )

        logger.info(
            "KPICombinationConfig loaded: zscore=%.1f, min_samples=%d, "
            "relevance=%s, legacy_outliers=%s, max_records=%d, provenance=%s",
            config.zscore_threshold,
            config.min_outlier_samples,
            config.relevance_mode,
            config.legacy_outlier_lookup,
            config.max_records,
            config.enable_provenance,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[KPICombinationConfig] = None
_config_lock = threading.Lock()


def get_config() -> KPICombinationConfig:
    """Return the singleton KPICombinationConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path.

    Returns:
        KPICombinationConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = KPICombinationConfig.from_env()
    return _config_instance


def set_config(config: KPICombinationConfig) -> None:
    """Replace the singleton KPICombinationConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("KPICombinationConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "KPICombinationConfig",
    "RELEVANCE_LINEAGE",
    "RELEVANCE_ID_PATTERN",
    "get_config",
    "set_config",
    "reset_config",
]
