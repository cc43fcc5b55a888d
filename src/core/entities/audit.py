"""Order integrity audit entities."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class IntegrityIssueKind(str, Enum):
    LINE_TOTAL = "line_total"
    SUBTOTAL = "subtotal"
    TOTAL = "total"
    NET_WEIGHT = "net_weight"
    GROSS_WEIGHT = "gross_weight"


class IntegrityIssue(BaseModel):
    """A stored figure that disagrees with its recomputed value."""

    kind: IntegrityIssueKind
    stored: float
    expected: float
    line_id: str | None = None

    @property
    def difference(self) -> float:
        return self.expected - self.stored


class IntegrityReport(BaseModel):
    """Result of auditing one stored order."""

    order_id: str | None
    tolerance: float
    issues: list[IntegrityIssue] = Field(default_factory=list)
    expected_subtotal: float = 0.0
    expected_total: float = 0.0
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_consistent(self) -> bool:
        return not self.issues

    @property
    def totals_drifted(self) -> bool:
        return any(
            issue.kind in (IntegrityIssueKind.SUBTOTAL, IntegrityIssueKind.TOTAL)
            for issue in self.issues
        )
