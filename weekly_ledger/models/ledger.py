"""
Core Data Models for the Weekly Ledger

These models define the strict schemas for everything the ledger persists
or hands back to the presentation layer. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Round-trip through the JSON key-value store
4. Support the audit trail

DESIGN DECISION: Transactions are frozen. A transaction is created once
and only ever removed by id; there is no update path.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from weekly_ledger.periods import parse_date

# The Transaction field is called `date`; keep a second name for the type
CalendarDate = date


def generate_transaction_id() -> str:
    return str(uuid4())


def generate_week_id() -> str:
    """
    Opaque week identifier.

    Week ids are never derived from a date, so two weeks that start on the
    same calendar day (a manual close on a Sunday) still get distinct ids.
    """
    return f"week_{uuid4().hex}"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single expense entry.

    `date` has date-only semantics; `week_id` is the week the entry was
    attributed to when it was created, which may differ from the standard
    calendar week containing `date`.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        default_factory=generate_transaction_id,
        min_length=1,
        description="Unique transaction ID"
    )
    description: str = Field(
        ...,
        min_length=1,
        description="What the money was spent on"
    )
    amount: Annotated[
        Decimal,
        Field(gt=0, description="Amount spent (always positive)")
    ]
    date: CalendarDate = Field(
        ...,
        description="Calendar date of the expense"
    )
    week_id: str = Field(
        ...,
        min_length=1,
        description="Week this expense is attributed to"
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the entry was recorded"
    )

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        """Older entries were stored as full ISO datetimes."""
        return parse_date(v)

    def to_storage(self) -> dict:
        """Convert to the JSON shape kept in the key-value store."""
        return {
            "id": self.id,
            "description": self.description,
            "amount": str(self.amount),
            "date": self.date.isoformat(),
            "weekId": self.week_id,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_storage(cls, data: dict) -> "Transaction":
        return cls(
            id=data["id"],
            description=data["description"],
            amount=Decimal(str(data["amount"])),
            date=data["date"],
            week_id=data["weekId"],
            created_at=data.get("createdAt") or datetime.now(),
        )


# =============================================================================
# WEEKS AND SCHEDULE
# =============================================================================

class CurrentWeek(BaseModel):
    """The week presently accepting new transactions."""

    week_id: str
    start_date: date
    end_date: date
    is_closed: bool = False

    @model_validator(mode="after")
    def validate_bounds(self) -> "CurrentWeek":
        if self.end_date < self.start_date:
            raise ValueError("Week end cannot be before week start")
        return self


class AutoCloseConfig(BaseModel):
    """
    When automatic closing may trigger.

    `day_of_week` uses 0 = Sunday. Any scheduled next close date must fall
    on this weekday.
    """

    enabled: bool = Field(
        default=True,
        description="Is automatic closing turned on?"
    )
    day_of_week: int = Field(
        default=0,
        ge=0,
        le=6,
        description="Weekday on which the week closes (0 = Sunday)"
    )
    hour: int = Field(
        default=12,
        ge=0,
        le=23,
        description="Hour of the day from which the close may fire"
    )

    def to_storage(self) -> dict:
        return {
            "enabled": self.enabled,
            "dayOfWeek": self.day_of_week,
            "hour": self.hour,
        }

    @classmethod
    def from_storage(cls, data: dict) -> "AutoCloseConfig":
        return cls(
            enabled=data.get("enabled", True),
            day_of_week=data.get("dayOfWeek", 0),
            hour=data.get("hour", 12),
        )


class WeekSummary(BaseModel):
    """One row of the week history."""

    week_id: str
    start_date: date
    end_date: date
    period: str = Field(
        ...,
        description="Readable period, e.g. '02/06/2024 - 08/06/2024'"
    )
    total: Decimal = Field(ge=0)
    transaction_count: int = Field(ge=0)
    is_closed: bool


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
