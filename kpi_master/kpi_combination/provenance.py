# -*- coding: utf-8 -*-
"""
Provenance Tracking for KPI Combination

Provides SHA-256 based audit trail tracking for combination runs and ETL
audits. Maintains an in-memory chain-hashed operation log for
tamper-evident provenance.

Example:
    >>> from kpi_master.kpi_combination.provenance import ProvenanceTracker
    >>> tracker = ProvenanceTracker()
    >>> chain_hash = tracker.record("combination_run", "run_001", "combine", "abc123")
    >>> valid, chain = tracker.verify_chain("combination_run", "run_001")
    >>> assert valid is True

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    "entity_type", "entity_id", "action",
    "data_hash", "timestamp", "previous_hash", "chain_hash",
)


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def build_hash(data: Any) -> str:
    """Build a SHA-256 hash for arbitrary JSON-serializable data.

    Args:
        data: Data to hash (dict, list, or other).

    Returns:
        Hex-encoded SHA-256 hash.
    """
    serialized = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class ProvenanceTracker:
    """Tracks provenance for KPI operations with SHA-256 chain hashing.

    Maintains an ordered log of operations with SHA-256 hashes that chain
    together to provide tamper-evident audit trails, grouped by entity type
    and entity ID.

    Attributes:
        _chain_store: In-memory chain storage grouped by entity key.
        _global_chain: Flat list of all entries in order.
        _last_chain_hash: Most recent chain hash for linking.
        _lock: Thread-safety lock.
    """

    def __init__(self, genesis: str = "kpi-master-combination-genesis") -> None:
        """Initialize ProvenanceTracker.

        Args:
            genesis: Seed string hashed into the first chain link.
        """
        self._genesis_hash = hashlib.sha256(genesis.encode("utf-8")).hexdigest()
        self._chain_store: Dict[str, List[Dict[str, Any]]] = {}
        self._global_chain: List[Dict[str, Any]] = []
        self._last_chain_hash: str = self._genesis_hash
        self._lock = threading.Lock()
        logger.info("ProvenanceTracker initialized")

    @property
    def genesis_hash(self) -> str:
        """Return the genesis hash of the chain."""
        return self._genesis_hash

    def record(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        data_hash: str,
        user_id: str = "system",
    ) -> str:
        """Record a provenance entry for an entity operation.

        Args:
            entity_type: Type of entity (combination_run, etl_audit).
            entity_id: Unique entity identifier.
            action: Action performed (combine, audit).
            data_hash: SHA-256 hash of the operation data.
            user_id: User who performed the operation.

        Returns:
            Chain hash of the new entry.
        """
        timestamp = _utcnow().isoformat()
        store_key = f"{entity_type}:{entity_id}"

        with self._lock:
            previous_hash = self._last_chain_hash
            chain_hash = self._compute_chain_hash(
                previous_hash, data_hash, action, timestamp,
            )
            entry = {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "data_hash": data_hash,
                "user_id": user_id,
                "timestamp": timestamp,
                "previous_hash": previous_hash,
                "chain_hash": chain_hash,
            }
            self._chain_store.setdefault(store_key, []).append(entry)
            self._global_chain.append(entry)
            self._last_chain_hash = chain_hash

        logger.debug(
            "Recorded provenance: %s/%s action=%s hash=%s",
            entity_type, entity_id[:8], action, chain_hash[:16],
        )
        return chain_hash

    def verify_chain(
        self,
        entity_type: str,
        entity_id: str,
    ) -> Tuple[bool, List[Dict[str, Any]]]:
        """Verify the integrity of the provenance chain for an entity.

        Recomputes every entry's chain hash from its recorded predecessor
        and checks it against the stored value.

        Args:
            entity_type: Type of entity.
            entity_id: Entity ID whose chain to verify.

        Returns:
            Tuple of (is_valid, chain_entries).
        """
        store_key = f"{entity_type}:{entity_id}"
        with self._lock:
            chain = list(self._chain_store.get(store_key, []))

        for entry in chain:
            missing = [f for f in _REQUIRED_FIELDS if f not in entry]
            if missing:
                logger.warning(
                    "Chain verification failed for %s/%s: missing fields %s",
                    entity_type, entity_id, missing,
                )
                return False, chain
            expected = self._compute_chain_hash(
                entry["previous_hash"], entry["data_hash"],
                entry["action"], entry["timestamp"],
            )
            if expected != entry["chain_hash"]:
                logger.warning(
                    "Chain verification failed for %s/%s: hash mismatch",
                    entity_type, entity_id,
                )
                return False, chain
        return True, chain

    def get_chain(
        self,
        entity_type: str,
        entity_id: str,
    ) -> List[Dict[str, Any]]:
        """Get the provenance chain for an entity, oldest first."""
        store_key = f"{entity_type}:{entity_id}"
        with self._lock:
            return list(self._chain_store.get(store_key, []))

    def get_global_chain(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Get the global provenance chain, newest first.

        Args:
            limit: Maximum number of entries to return.
        """
        with self._lock:
            return list(reversed(self._global_chain[-limit:]))

    def _compute_chain_hash(
        self,
        previous_hash: str,
        data_hash: str,
        action: str,
        timestamp: str,
    ) -> str:
        combined = json.dumps({
            "previous": previous_hash,
            "data": data_hash,
            "action": action,
            "timestamp": timestamp,
        }, sort_keys=True)
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()

    @property
    def entry_count(self) -> int:
        """Return the total number of provenance entries."""
        with self._lock:
            return len(self._global_chain)

    def export_json(self) -> str:
        """Export all provenance records as a JSON string."""
        with self._lock:
            data = list(self._global_chain)
        return json.dumps(data, indent=2, default=str)


__all__ = [
    "ProvenanceTracker",
    "build_hash",
]
