# -*- coding: utf-8 -*-
"""
Tests for source file documentation.
"""

import os
import re

import pytest

from kpi_master.etl_audit.audit_engine import ETLAuditEngine
from kpi_master.etl_audit.file_documentation import (
    document_file,
    document_files,
    sha256_file,
)

HELLO_SHA256 = "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
ISO_MS_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


@pytest.fixture
def hello_file(tmp_path):
    """A five-byte source file."""
    path = tmp_path / "kpi_export.json"
    path.write_bytes(b"hello")
    return path


class TestSha256File:
    """Test chunked hashing."""

    def test_known_digest(self, hello_file):
        """The digest matches the well-known SHA-256 of ``hello``."""
        assert sha256_file(str(hello_file)) == HELLO_SHA256

    def test_small_chunks(self, hello_file):
        """The digest does not depend on the chunk size."""
        assert sha256_file(str(hello_file), chunk_size=2) == HELLO_SHA256

    def test_missing_file(self, tmp_path):
        """Unreadable files raise OSError."""
        with pytest.raises(OSError):
            sha256_file(str(tmp_path / "absent.json"))


class TestDocumentFile:
    """Test single-file documentation."""

    def test_metadata(self, hello_file):
        """Existing files are fully documented."""
        doc = document_file(str(hello_file))
        assert doc.ok is True
        assert doc.file == "kpi_export.json"
        assert doc.size_bytes == 5
        assert doc.sha256 == HELLO_SHA256
        assert doc.abs_path == os.path.abspath(str(hello_file))
        assert ISO_MS_UTC.match(doc.modified_utc)
        assert ISO_MS_UTC.match(doc.created_utc)

    def test_documented_shape(self, hello_file):
        """The documented dictionary omits the error key."""
        assert set(document_file(str(hello_file)).to_dict()) == {
            "file", "size_bytes", "modified_utc", "created_utc", "sha256", "abs_path",
        }

    def test_missing_file_documented_as_error(self, tmp_path):
        """A missing file yields only the given path and an error message."""
        path = str(tmp_path / "absent.json")
        doc = document_file(path)
        assert doc.ok is False
        assert doc.to_dict()["file"] == path
        assert set(doc.to_dict()) == {"file", "error"}

    def test_order_preserved(self, hello_file, tmp_path):
        """Several files are documented in the given order."""
        docs = document_files([str(tmp_path / "absent.json"), str(hello_file)])
        assert [doc.ok for doc in docs] == [False, True]


class TestAuditFileDocumentation:
    """Test file documentation within an audit."""

    def test_single_path(self, hello_file, make_output_record):
        """A single path is documented on the report."""
        report = ETLAuditEngine().audit(
            [make_output_record()], {"source_file": str(hello_file)},
        )
        assert report.file_documentation[0]["sha256"] == HELLO_SHA256

    def test_failure_does_not_abort_audit(self, hello_file, tmp_path, make_output_record):
        """An unreadable file is reported next to readable ones."""
        report = ETLAuditEngine().audit(
            [make_output_record()],
            {"source_file": [str(hello_file), str(tmp_path / "absent.json")]},
        )
        assert report.count_output == 1
        assert "sha256" in report.file_documentation[0]
        assert "error" in report.file_documentation[1]
