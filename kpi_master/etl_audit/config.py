# -*- coding: utf-8 -*-
"""
ETL Audit Service Configuration

Centralized configuration for the ETL audit engine covering:
- Anomaly detection thresholds (low-confidence cut-off)
- Data quality scoring tolerances (critical/anomaly rate)
- Report shaping (anomaly reasons, sample size, missing-field top-N)
- File documentation (hash chunk size)
- Logging

All settings can be overridden via environment variables with the
``KPI_AUDIT_`` prefix (e.g. ``KPI_AUDIT_SAMPLE_SIZE``).

Example:
    >>> from kpi_master.etl_audit.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.low_confidence_threshold, cfg.sample_size)

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

_ENV_PREFIX = "KPI_AUDIT_"


# ---------------------------------------------------------------------------
# ETLAuditConfig
# ---------------------------------------------------------------------------


@dataclass
class ETLAuditConfig:
    """Complete configuration for the ETL audit engine.

    Attributes:
        low_confidence_threshold: Upstream confidence below which a record
            is reported as an anomaly.
        critical_rate: Fraction of records tolerated as critical or
            anomalous before the quality score is penalized to zero.
        quality_alert_threshold: Data quality score below which a data
            tracing diagnosis is produced.
        max_anomaly_reasons: Maximum anomaly reasons kept on the report.
        sample_size: Number of records summarized in ``sample_content``.
        missing_field_top_n: Size of the missing-field frequency table.
        hash_chunk_size: Read size in bytes when hashing source files.
        log_level: Logging level for the audit engine.
    """

    # -- Anomaly detection ---------------------------------------------------
    low_confidence_threshold: float = 0.5

    # -- Quality scoring -----------------------------------------------------
    critical_rate: float = 0.05
    quality_alert_threshold: int = 70

    # -- Report shaping ------------------------------------------------------
    max_anomaly_reasons: int = 5
    sample_size: int = 3
    missing_field_top_n: int = 10

    # -- File documentation --------------------------------------------------
    hash_chunk_size: int = 65536

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> ETLAuditConfig:
        """Build an ETLAuditConfig from environment variables.

        Every field can be overridden via ``KPI_AUDIT_<FIELD_UPPER>``.

        Returns:
            Populated ETLAuditConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

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

        config = cls(
            low_confidence_threshold=_float(
                "LOW_CONFIDENCE_THRESHOLD", cls.low_confidence_threshold,
            ),
            critical_rate=_float("CRITICAL_RATE", cls.critical_rate),
            quality_alert_threshold=_int(
                "QUALITY_ALERT_THRESHOLD", cls.quality_alert_threshold,
            ),
            max_anomaly_reasons=_int(
                "MAX_ANOMALY_REASONS", cls.max_anomaly_reasons,
            ),
            sample_size=_int("SAMPLE_SIZE", cls.sample_size),
            missing_field_top_n=_int(
                "MISSING_FIELD_TOP_N", cls.missing_field_top_n,
            ),
            hash_chunk_size=_int("HASH_CHUNK_SIZE", cls.hash_chunk_size),
            log_level=_str("LOG_LEVEL", cls.log_level),
        )

        logger.info(
            "ETLAuditConfig loaded: low_conf=%.2f, critical_rate=%.2f, "
            "alert=%d, reasons=%d, sample=%d, top_n=%d",
            config.low_confidence_threshold,
            config.critical_rate,
            config.quality_alert_threshold,
            config.max_anomaly_reasons,
            config.sample_size,
            config.missing_field_top_n,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[ETLAuditConfig] = None
_config_lock = threading.Lock()


def get_config() -> ETLAuditConfig:
    """Return the singleton ETLAuditConfig, creating from env if needed."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = ETLAuditConfig.from_env()
    return _config_instance


def set_config(config: ETLAuditConfig) -> None:
    """Replace the singleton ETLAuditConfig (useful for testing)."""
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("ETLAuditConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "ETLAuditConfig",
    "get_config",
    "set_config",
    "reset_config",
]
