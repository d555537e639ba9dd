# -*- coding: utf-8 -*-
"""
Tests for the KPI master service facade and REST API.
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from kpi_master.setup import (
    KPIMasterService,
    _reset_singleton,
    configure_kpi_master,
    get_kpi_master,
)

PREFIX = "/api/v1/kpi-master"


@pytest.fixture
def app(combination_config, audit_config):
    """FastAPI application with the KPI master service configured."""
    _reset_singleton()
    application = FastAPI()
    asyncio.run(configure_kpi_master(application, combination_config, audit_config))
    yield application
    _reset_singleton()


@pytest.fixture
def client(app):
    """Test client for the configured application."""
    return TestClient(app)


class TestKPIMasterService:
    """Test the service facade without HTTP."""

    def test_combine_and_audit_share_provenance(self, mixed_batch, combination_config, audit_config):
        """A run and its audit land in the same provenance trail."""
        service = KPIMasterService(config=combination_config, audit_config=audit_config)
        response = service.combine_and_audit(mixed_batch)
        assert len(response.combination.records) == 1
        assert response.audit.count_output == 1
        assert service.provenance.entry_count == 2

    def test_statistics(self, mixed_batch, workforce_rows, combination_config, audit_config):
        """Service statistics accumulate over runs."""
        service = KPIMasterService(config=combination_config, audit_config=audit_config)
        service.combine(mixed_batch)
        result = service.combine(workforce_rows)
        service.audit(result.records)

        stats = service.get_statistics()
        assert stats.total_combinations == 2
        assert stats.total_audits == 1
        assert stats.total_input_items == 7
        assert stats.total_output_records == 2
        assert stats.total_dropped_records == 1
        assert stats.last_data_classification is not None

    def test_health_lifecycle(self, combination_config, audit_config):
        """Health reflects startup and shutdown."""
        service = KPIMasterService(config=combination_config, audit_config=audit_config)
        assert service.health_check()["status"] == "not_started"
        service.startup()
        service.startup()
        assert service.health_check()["status"] == "healthy"
        service.shutdown()
        assert service.health_check()["started"] is False

    def test_catalog(self, combination_config, audit_config):
        """The catalog lists divisions in order with lineage labels."""
        catalog = KPIMasterService(combination_config, audit_config).get_catalog()
        assert list(catalog["divisions"]) == [
            "workforce", "finance", "sales", "operations", "project", "strategy",
        ]
        assert catalog["divisions"]["workforce"]["lineage_label"] == "HR"
        assert "employee_id" in catalog["divisions"]["workforce"]["fields"]
        assert catalog["field_count"] == 177

    def test_engine_statistics(self, combination_config, audit_config):
        """Engine statistics include the audit engine."""
        stats = KPIMasterService(combination_config, audit_config).get_engine_statistics()
        names = [engine["engine_name"] for engine in stats["engines"]]
        assert "ETLAuditEngine" in names


class TestConfigureKPIMaster:
    """Test application wiring."""

    def test_service_on_app_state(self, app):
        """The configured service is stored on the application."""
        service = get_kpi_master(app)
        assert isinstance(service, KPIMasterService)
        assert service.health_check()["status"] == "healthy"

    def test_not_configured(self):
        """Accessing an unconfigured application raises RuntimeError."""
        with pytest.raises(RuntimeError):
            get_kpi_master(FastAPI())


@pytest.mark.integration
class TestRouter:
    """Test the REST endpoints."""

    def test_combine(self, client, mixed_batch):
        """POST /combine returns combined records."""
        response = client.post(f"{PREFIX}/combine", json={"items": mixed_batch})
        assert response.status_code == 200
        body = response.json()
        assert body["dropped_count"] == 1
        assert body["records"][0]["id"] == "Retail_North_S01_1_E100"
        assert body["records"][0]["total_revenue"] == 250000

    def test_audit(self, client, make_output_record):
        """POST /audit returns an audit report."""
        response = client.post(f"{PREFIX}/audit", json={"items": [make_output_record()]})
        assert response.status_code == 200
        assert response.json()["data_classification"] == "very good"

    def test_audit_documents_source_file(self, client, tmp_path, make_output_record):
        """POST /audit documents the named source file."""
        path = tmp_path / "export.json"
        path.write_bytes(b"hello")
        response = client.post(
            f"{PREFIX}/audit",
            json={"items": [make_output_record()], "source_file": str(path)},
        )
        assert response.json()["file_documentation"][0]["size_bytes"] == 5

    def test_combine_and_audit(self, client, workforce_rows):
        """POST /combine-and-audit returns both results."""
        response = client.post(f"{PREFIX}/combine-and-audit", json={"items": workforce_rows})
        assert response.status_code == 200
        body = response.json()
        assert len(body["combination"]["records"]) == 1
        assert body["audit"]["count_output"] == 1

    @pytest.mark.parametrize("path", ["/combine", "/audit", "/combine-and-audit"])
    def test_items_must_be_list(self, client, path):
        """Requests without an item list are rejected."""
        response = client.post(f"{PREFIX}{path}", json={"items": {"employee_id": "E1"}})
        assert response.status_code == 400

    def test_audit_rejects_non_mapping_items(self, client):
        """Audit items must be records."""
        response = client.post(f"{PREFIX}/audit", json={"items": [1, 2]})
        assert response.status_code == 400

    def test_catalog(self, client):
        """GET /catalog describes the schema."""
        body = client.get(f"{PREFIX}/catalog").json()
        assert len(body["fields_by_div"]) == 6
        assert len(body["output_fields"]) == body["field_count"]

    def test_health(self, client):
        """GET /health reports a started service."""
        body = client.get(f"{PREFIX}/health").json()
        assert body["status"] == "healthy"
        assert body["service"] == "kpi-master"

    def test_statistics(self, client, workforce_rows):
        """GET /statistics reflects completed runs."""
        client.post(f"{PREFIX}/combine", json={"items": workforce_rows})
        body = client.get(f"{PREFIX}/statistics").json()
        assert body["total_combinations"] == 1
        assert body["total_output_records"] == 1
