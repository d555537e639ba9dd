# -*- coding: utf-8 -*-
"""
Source File Documentation - ETL Audit

Captures integrity metadata for named source files: base name, size,
modification and change timestamps (ISO-8601 UTC with millisecond
precision), SHA-256 digest and absolute path. A file that cannot be
read is documented as ``{"file": <given path>, "error": <message>}``
instead of aborting the audit.

Example:
    >>> from kpi_master.etl_audit.file_documentation import document_file
    >>> doc = document_file("data/kpi_export.json")
    >>> doc.ok, doc.sha256

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import logging
import os
from datetime import datetime, timezone
from typing import Any, Iterable, List

from kpi_master.etl_audit.metrics import record_file_documentation
from kpi_master.etl_audit.models import FileDocumentation

logger = logging.getLogger(__name__)

__all__ = [
    "document_file",
    "document_files",
    "sha256_file",
]

_DEFAULT_CHUNK_SIZE = 65536


def _iso_utc(timestamp: float) -> str:
    """Format a POSIX timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sha256_file(path: str, chunk_size: int = _DEFAULT_CHUNK_SIZE) -> str:
    """Compute the SHA-256 digest of a file, reading it in chunks.

    Args:
        path: File path.
        chunk_size: Read size in bytes.

    Returns:
        Hex-encoded SHA-256 digest.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def document_file(path: Any, chunk_size: int = _DEFAULT_CHUNK_SIZE) -> FileDocumentation:
    """Document one source file.

    Args:
        path: File path as supplied by the caller.
        chunk_size: Read size in bytes for hashing.

    Returns:
        FileDocumentation; on failure only ``file`` and ``error`` are set.
    """
    try:
        stat = os.stat(path)
        digest = sha256_file(path, chunk_size)
        doc = FileDocumentation(
            file=os.path.basename(path),
            size_bytes=stat.st_size,
            modified_utc=_iso_utc(stat.st_mtime),
            created_utc=_iso_utc(stat.st_ctime),
            sha256=digest,
            abs_path=os.path.abspath(path),
        )
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Unable to document source file %r: %s", path, exc)
        record_file_documentation("error")
        return FileDocumentation(file=str(path), error=str(exc))

    record_file_documentation("ok")
    logger.debug("Documented %s (%d bytes, sha256=%s)", doc.abs_path, stat.st_size, digest[:16])
    return doc


def document_files(
    paths: Iterable[Any],
    chunk_size: int = _DEFAULT_CHUNK_SIZE,
) -> List[FileDocumentation]:
    """Document several source files, preserving order."""
    return [document_file(path, chunk_size) for path in paths]
