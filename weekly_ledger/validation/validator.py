"""
Ledger Input Validation

DESIGN DECISION: Every value that reaches the ledger from a form is checked
here, before any state is read or written. The ledger itself only ever
sees clean values: a trimmed description, a positive Decimal amount and a
calendar date.

IMPORTANT: Validation NEVER silently fixes issues. A bad amount is rejected,
not rounded or clamped. The only normalization is trimming whitespace.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from weekly_ledger.exceptions import ValidationError
from weekly_ledger.models.ledger import AutoCloseConfig
from weekly_ledger.periods import (
    WEEKDAY_NAMES,
    InvalidDateError,
    is_day_of_week,
    parse_date,
)


class LedgerValidator:
    """
    Validates user input for ledger writes.

    Each method returns the normalized value or raises ValidationError
    carrying the offending field.
    """

    def validate_description(self, description: Any) -> str:
        if description is None or not str(description).strip():
            raise ValidationError(
                "Description is required",
                field="description",
                issue_type="missing",
            )
        return str(description).strip()

    def validate_amount(self, amount: Any) -> Decimal:
        value = self._to_decimal(amount, field="amount")
        if value is None or value <= 0:
            raise ValidationError(
                "Amount must be greater than zero",
                field="amount",
            )
        return value

    def validate_entry_date(self, value: Any) -> date:
        if value is None:
            raise ValidationError(
                "Date is required",
                field="date",
                issue_type="missing",
            )
        try:
            return parse_date(value)
        except InvalidDateError as e:
            raise ValidationError(
                f"Missing or invalid date: {e}",
                field="date",
                issue_type="invalid_format",
            )

    def validate_transaction(
        self,
        description: Any,
        amount: Any,
        entry_date: Any,
    ) -> tuple[str, Decimal, date]:
        """
        Validate the three inputs of a new expense, in form order.

        Returns:
            (description, amount, date)
        """
        return (
            self.validate_description(description),
            self.validate_amount(amount),
            self.validate_entry_date(entry_date),
        )

    def validate_weekly_limit(self, limit: Any) -> Optional[Decimal]:
        """
        None means "no limit". Anything else must be a positive number.
        """
        if limit is None:
            return None
        value = self._to_decimal(limit, field="weekly_limit")
        if value is None or value <= 0:
            raise ValidationError(
                "Limit must be a number greater than zero",
                field="weekly_limit",
            )
        return value

    def validate_auto_close_config(self, config: Any) -> AutoCloseConfig:
        if isinstance(config, AutoCloseConfig):
            return config
        try:
            if isinstance(config, dict) and "dayOfWeek" in config:
                return AutoCloseConfig.from_storage(config)
            return AutoCloseConfig.model_validate(config)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "config"
            raise ValidationError(
                f"Invalid auto-close configuration: {first['msg']}",
                field=field,
            )

    def validate_next_close_date(
        self,
        value: Any,
        day_of_week: int,
        today: date,
    ) -> date:
        """
        A scheduled close must land on the configured weekday and be
        strictly after today.
        """
        close_date = self.validate_entry_date(value)
        if not is_day_of_week(close_date, day_of_week):
            raise ValidationError(
                f"Next close date must be a {WEEKDAY_NAMES[day_of_week]}",
                field="next_close_date",
            )
        if close_date <= today:
            raise ValidationError(
                "Next close date must be in the future",
                field="next_close_date",
            )
        return close_date

    def _to_decimal(self, value: Any, field: str) -> Optional[Decimal]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, float):
            value = repr(value)
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(
                f"{field.replace('_', ' ').capitalize()} must be a number",
                field=field,
                issue_type="invalid_format",
            )
        if not result.is_finite():
            raise ValidationError(
                f"{field.replace('_', ' ').capitalize()} must be a number",
                field=field,
                issue_type="invalid_format",
            )
        return result
