# -*- coding: utf-8 -*-
"""
Tests for the combination and audit configuration layers.
"""

import pytest

from kpi_master.etl_audit import config as audit_config_module
from kpi_master.etl_audit.config import ETLAuditConfig
from kpi_master.kpi_combination import config as combination_config_module
from kpi_master.kpi_combination.config import (
    RELEVANCE_ID_PATTERN,
    RELEVANCE_LINEAGE,
    KPICombinationConfig,
)


class TestKPICombinationConfig:
    """Test combination configuration."""

    def test_defaults(self):
        """Defaults select lineage relevance and the corrected outlier lookup."""
        cfg = KPICombinationConfig()
        assert cfg.zscore_threshold == 3.0
        assert cfg.min_outlier_samples == 3
        assert cfg.relevance_mode == RELEVANCE_LINEAGE
        assert cfg.legacy_outlier_lookup is False
        assert cfg.enable_provenance is True

    @pytest.mark.parametrize("kwargs", [
        {"relevance_mode": "fuzzy"},
        {"min_outlier_samples": 0},
        {"zscore_threshold": 0},
        {"max_records": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        """Invalid values raise ValueError."""
        with pytest.raises(ValueError):
            KPICombinationConfig(**kwargs)

    def test_from_env(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("KPI_COMB_ZSCORE_THRESHOLD", "2.5")
        monkeypatch.setenv("KPI_COMB_MIN_OUTLIER_SAMPLES", "5")
        monkeypatch.setenv("KPI_COMB_RELEVANCE_MODE", "ID_PATTERN")
        monkeypatch.setenv("KPI_COMB_LEGACY_OUTLIER_LOOKUP", "yes")
        monkeypatch.setenv("KPI_COMB_ENABLE_PROVENANCE", "false")
        cfg = KPICombinationConfig.from_env()
        assert cfg.zscore_threshold == 2.5
        assert cfg.min_outlier_samples == 5
        assert cfg.relevance_mode == RELEVANCE_ID_PATTERN
        assert cfg.legacy_outlier_lookup is True
        assert cfg.enable_provenance is False

    def test_from_env_invalid_falls_back(self, monkeypatch):
        """Unparseable values fall back to defaults."""
        monkeypatch.setenv("KPI_COMB_ZSCORE_THRESHOLD", "high")
        monkeypatch.setenv("KPI_COMB_MAX_RECORDS", "many")
        monkeypatch.setenv("KPI_COMB_RELEVANCE_MODE", "fuzzy")
        cfg = KPICombinationConfig.from_env()
        assert cfg.zscore_threshold == 3.0
        assert cfg.max_records == 1_000_000
        assert cfg.relevance_mode == RELEVANCE_LINEAGE

    def test_singleton(self):
        """get/set/reset manage one shared instance."""
        first = combination_config_module.get_config()
        assert combination_config_module.get_config() is first
        custom = KPICombinationConfig(zscore_threshold=2.0)
        combination_config_module.set_config(custom)
        assert combination_config_module.get_config() is custom
        combination_config_module.reset_config()
        assert combination_config_module.get_config() is not custom


class TestETLAuditConfig:
    """Test audit configuration."""

    def test_defaults(self):
        """Defaults match the documented audit thresholds."""
        cfg = ETLAuditConfig()
        assert cfg.low_confidence_threshold == 0.5
        assert cfg.critical_rate == 0.05
        assert cfg.quality_alert_threshold == 70
        assert cfg.max_anomaly_reasons == 5
        assert cfg.sample_size == 3

    def test_from_env(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("KPI_AUDIT_LOW_CONFIDENCE_THRESHOLD", "0.6")
        monkeypatch.setenv("KPI_AUDIT_SAMPLE_SIZE", "5")
        monkeypatch.setenv("KPI_AUDIT_QUALITY_ALERT_THRESHOLD", "x")
        cfg = ETLAuditConfig.from_env()
        assert cfg.low_confidence_threshold == 0.6
        assert cfg.sample_size == 5
        assert cfg.quality_alert_threshold == 70

    def test_singleton(self):
        """get/set/reset manage one shared instance."""
        custom = ETLAuditConfig(sample_size=1)
        audit_config_module.set_config(custom)
        assert audit_config_module.get_config() is custom
        audit_config_module.reset_config()
        assert audit_config_module.get_config().sample_size == 3
