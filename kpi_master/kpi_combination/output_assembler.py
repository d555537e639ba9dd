# -*- coding: utf-8 -*-
"""
Output Assembler - KPI Combination

Builds the final output record of a composite key: identity, lineage,
catalog summary, error flags, key tokens, every resolved division field
under its output name, outlier and imputed flags, and the quality scores.

Example:
    >>> from kpi_master.kpi_combination.output_assembler import OutputAssembler
    >>> assembler = OutputAssembler(QualityScorer())
    >>> record = assembler.assemble(1, merged, resolutions, outlier_flags={})

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence

from kpi_master.kpi_combination.merge_engine import MergedRecord
from kpi_master.kpi_combination.models import FieldResolution, OutputRecord
from kpi_master.kpi_combination.quality_scorer import QualityScorer
from kpi_master.kpi_combination.schema_catalog import (
    DISCRIMINANT_FIELDS,
    PRIMARY_KEY_ERROR,
    catalog_summary,
)
from kpi_master.kpi_combination.value_coercion import is_blank, is_truthy

logger = logging.getLogger(__name__)

__all__ = [
    "OutputAssembler",
]


class OutputAssembler:
    """Assembles scored output records from merged, resolved fields."""

    def __init__(self, scorer: QualityScorer) -> None:
        """Initialize OutputAssembler.

        Args:
            scorer: Quality scorer applied to every assembled record.
        """
        self._scorer = scorer

    def assemble(
        self,
        item_number: int,
        merged: MergedRecord,
        resolutions: Sequence[FieldResolution],
        outlier_flags: Mapping[str, bool],
    ) -> OutputRecord:
        """Assemble one output record.

        Args:
            item_number: 1-based position of the record in the output.
            merged: Merged record of the key.
            resolutions: Resolved output fields, in output order.
            outlier_flags: Flagged output fields of the key.

        Returns:
            OutputRecord with quality scores attached.
        """
        key = merged.key
        record: Dict[str, Any] = {
            "item_number": item_number,
            "id": merged.record_id,
            "sources_included": merged.lineage,
            "config_info": catalog_summary(),
            "error_flags": self.error_flags(merged),
            "department": key.department,
            "region": key.region,
            "store_id": key.store_id,
            "period": key.period,
            "month": key.period,
        }
        for resolution in resolutions:
            record[resolution.output_name] = resolution.value

        record["outlier_flags"] = dict(outlier_flags)
        record["imputed_flags"] = self.imputed_flags(resolutions)

        score = self._scorer.score(record, merged.divisions)
        record["completeness_score"] = score.completeness_score
        record["embedding"] = score.missing_fields
        record["confidence_score"] = score.confidence_score

        logger.debug(
            "Assembled %s: completeness=%.1f confidence=%.3f missing=%d",
            record["id"], score.completeness_score,
            score.confidence_score, len(score.missing_fields),
        )
        return OutputRecord(**record)

    @staticmethod
    def error_flags(merged: MergedRecord) -> List[str]:
        """Return record diagnostics; flags records without a primary field."""
        if any(is_truthy(merged.get(name)) for _, name in DISCRIMINANT_FIELDS):
            return []
        return [PRIMARY_KEY_ERROR]

    @staticmethod
    def imputed_flags(resolutions: Sequence[FieldResolution]) -> Dict[str, bool]:
        """Return output field name -> True for every null or empty value."""
        return {
            resolution.output_name: True
            for resolution in resolutions
            if is_blank(resolution.value)
        }
