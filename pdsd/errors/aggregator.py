"""
errors/aggregator.py - Aggregate and report errors

Collects per-node records from an evaluation pass into a summary the editor
can display.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import uuid

from .taxonomy import EngineError, ErrorCategory, ErrorSeverity


@dataclass
class ErrorReport:
    """Aggregated error report."""

    report_id: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)

    # Counts
    total_errors: int = 0
    by_severity: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)
    by_node: Dict[int, int] = field(default_factory=dict)

    critical_errors: List[EngineError] = field(default_factory=list)

    summary: str = ""

    all_errors: List[EngineError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "total_errors": self.total_errors,
            "by_severity": self.by_severity,
            "by_category": self.by_category,
            "by_node": self.by_node,
            "critical_count": len(self.critical_errors),
            "summary": self.summary,
        }


class ErrorAggregator:
    """
    Aggregates errors from multiple nodes.
    """

    def __init__(self):
        self._errors: List[EngineError] = []
        self._by_node: Dict[Optional[int], List[EngineError]] = {}

    def add(self, error: EngineError) -> None:
        """Add an error."""
        self._errors.append(error)
        self._by_node.setdefault(error.node_id, []).append(error)

    def add_all(self, errors: List[EngineError]) -> None:
        """Add multiple errors."""
        for error in errors:
            self.add(error)

    def get_by_severity(self, severity: ErrorSeverity) -> List[EngineError]:
        return [e for e in self._errors if e.severity == severity]

    def get_by_category(self, category: ErrorCategory) -> List[EngineError]:
        return [e for e in self._errors if e.category == category]

    def get_by_node(self, node_id: int) -> List[EngineError]:
        return list(self._by_node.get(node_id, []))

    def has_critical(self) -> bool:
        return any(e.severity == ErrorSeverity.CRITICAL for e in self._errors)

    def has_errors(self) -> bool:
        """Check if any errors (not just warnings)."""
        return any(
            e.severity in [ErrorSeverity.ERROR, ErrorSeverity.CRITICAL]
            for e in self._errors
        )

    def generate_report(self) -> ErrorReport:
        """Generate aggregated report."""
        report = ErrorReport(
            report_id=str(uuid.uuid4())[:8],
            total_errors=len(self._errors),
        )

        for severity in ErrorSeverity:
            count = sum(1 for e in self._errors if e.severity == severity)
            if count > 0:
                report.by_severity[severity.value] = count

        for category in ErrorCategory:
            count = sum(1 for e in self._errors if e.category == category)
            if count > 0:
                report.by_category[category.value] = count

        for node_id, errors in self._by_node.items():
            if node_id is not None:
                report.by_node[node_id] = len(errors)

        report.critical_errors = [
            e for e in self._errors if e.severity == ErrorSeverity.CRITICAL
        ]

        if report.critical_errors:
            report.summary = f"{len(report.critical_errors)} critical error(s) require immediate attention"
        elif report.by_severity.get("error", 0) > 0:
            report.summary = f"{report.by_severity['error']} error(s) found"
        elif report.by_severity.get("warning", 0) > 0:
            report.summary = f"{report.by_severity['warning']} warning(s) found"
        else:
            report.summary = "No significant issues"

        report.all_errors = self._errors.copy()

        return report

    def clear(self) -> None:
        self._errors.clear()
        self._by_node.clear()
