"""
Order integrity audit.

Recomputes every derived figure of a stored order from its inputs and
reports the ones that drifted beyond a tolerance. Pure: no I/O.
"""

from src.core.entities.audit import IntegrityIssue, IntegrityIssueKind, IntegrityReport
from src.core.entities.order import SalesOrder
from src.core.services.order_pricing import (
    compute_aggregates,
    line_total,
    recompute_order_aggregates,
)

DEFAULT_TOLERANCE = 0.01


class OrderIntegrityChecker:
    """Compares stored order figures against recomputed ones."""

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE, clamp_line_totals: bool = False):
        self._tolerance = tolerance
        self._clamp = clamp_line_totals

    def check(self, order: SalesOrder) -> IntegrityReport:
        """Audit an order without modifying it."""
        issues: list[IntegrityIssue] = []
        expected_subtotal = 0.0

        for line in order.items:
            expected = line_total(
                line.quantity, line.unit_price, line.discount_amount, clamp=self._clamp
            )
            if abs(expected - line.total_amount) > self._tolerance:
                issues.append(
                    IntegrityIssue(
                        kind=IntegrityIssueKind.LINE_TOTAL,
                        stored=line.total_amount,
                        expected=expected,
                        line_id=line.id,
                    )
                )
            expected_subtotal += expected

        expected_total = max(
            0.0, expected_subtotal + order.freight_amount - order.discount_amount
        )
        self._compare(issues, IntegrityIssueKind.SUBTOTAL, order.subtotal_amount, expected_subtotal)
        self._compare(issues, IntegrityIssueKind.TOTAL, order.total_amount, expected_total)

        weights = compute_aggregates(order)
        self._compare(issues, IntegrityIssueKind.NET_WEIGHT, order.total_weight_kg, weights.total_weight_kg)
        self._compare(
            issues,
            IntegrityIssueKind.GROSS_WEIGHT,
            order.total_gross_weight_kg,
            weights.total_gross_weight_kg,
        )

        return IntegrityReport(
            order_id=order.id,
            tolerance=self._tolerance,
            issues=issues,
            expected_subtotal=expected_subtotal,
            expected_total=expected_total,
        )

    def correct(self, order: SalesOrder) -> IntegrityReport:
        """Audit, then rewrite every derived figure on the order in place."""
        report = self.check(order)
        if report.issues:
            for line in order.items:
                line.recompute(clamp=self._clamp)
            recompute_order_aggregates(order, epsilon=0.0)
        return report

    def _compare(
        self,
        issues: list[IntegrityIssue],
        kind: IntegrityIssueKind,
        stored: float,
        expected: float,
    ) -> None:
        if abs(expected - stored) > self._tolerance:
            issues.append(IntegrityIssue(kind=kind, stored=stored, expected=expected))
