"""
Raw Financial Records

These models describe the rows the Data Access collaborator hands us.
The hosted store is permissive: numbers may arrive as strings, nulls or
garbage, names may be missing. We normalise all of that HERE, once,
so the aggregator can do plain arithmetic.

DESIGN DECISION: Unparseable amounts become 0.0 rather than raising.
A user with a half-filled record should still get an answer.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _to_float(value: Any) -> float:
    """Parse a numeric column leniently (None, '' and junk become 0.0)."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def _to_local_naive(value: datetime) -> datetime:
    """Timestamps from the store may be tz-aware; the engine works in local time."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class _Record(BaseModel):
    """Base for all store rows: unknown columns are ignored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class AccountRecord(_Record):
    """A bank/cash/wallet account."""

    id: Optional[str] = None
    name: str = "Unnamed Account"
    type: str = "other"
    balance: float = 0.0
    currency: str = "USD"

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("name", "type", "currency", mode="before")
    @classmethod
    def fill_blank_text(cls, v: Any, info) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("balance", mode="before")
    @classmethod
    def parse_balance(cls, v: Any) -> float:
        return _to_float(v)


class TransactionRecord(_Record):
    """
    A single income or expense entry.

    `amount` keeps the sign as stored; expense totals use the absolute value.
    `occurred_at` comes from `created_at`, falling back to `date`.
    """

    id: Optional[str] = None
    account_id: Optional[str] = None
    description: str = "No description"
    amount: float = 0.0
    type: str = "expense"
    category: str = "Uncategorized"
    occurred_at: datetime = Field(default_factory=datetime.now)
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def pick_timestamp(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("occurred_at") is None:
            data = dict(data)
            stamp = data.get("created_at") or data.get("date")
            if stamp:
                data["occurred_at"] = stamp
            else:
                data.pop("occurred_at", None)
        return data

    @field_validator("id", "account_id", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("description", "type", "category", mode="before")
    @classmethod
    def fill_blank_text(cls, v: Any, info) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> float:
        return _to_float(v)

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v: Any) -> Any:
        return v or []

    @field_validator("occurred_at")
    @classmethod
    def normalise_timezone(cls, v: datetime) -> datetime:
        return _to_local_naive(v)

    @property
    def is_transfer(self) -> bool:
        """Transfers between own accounts are neither income nor spending."""
        return any("transfer" in tag for tag in self.tags)


class PurchaseRecord(_Record):
    """A planned or completed purchase."""

    item_name: str = "Unnamed Item"
    amount: float = 0.0
    status: str = "purchased"

    @model_validator(mode="before")
    @classmethod
    def price_fallback(cls, data: Any) -> Any:
        if isinstance(data, dict) and not _to_float(data.get("amount")):
            data = dict(data)
            data["amount"] = data.get("price")
        return data

    @field_validator("item_name", "status", mode="before")
    @classmethod
    def fill_blank_text(cls, v: Any, info) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> float:
        return _to_float(v)


class LendBorrowRecord(_Record):
    """Money lent to or borrowed from another person."""

    person_name: str = "Unknown"
    amount: float = 0.0
    type: str = "lent"
    status: str = "active"
    due_date: Optional[date] = None

    @field_validator("person_name", "type", "status", mode="before")
    @classmethod
    def fill_blank_text(cls, v: Any, info) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> float:
        return _to_float(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v or None


class SavingsGoalRecord(_Record):
    """A savings target."""

    name: str = "Unnamed Goal"
    target_amount: float = 0.0
    current_amount: float = 0.0
    target_date: Optional[date] = None

    @field_validator("name", mode="before")
    @classmethod
    def fill_blank_name(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Unnamed Goal"
        return v

    @field_validator("target_amount", "current_amount", mode="before")
    @classmethod
    def parse_amounts(cls, v: Any) -> float:
        return _to_float(v)

    @field_validator("target_date", mode="before")
    @classmethod
    def parse_target_date(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v or None


class CategoryRecord(_Record):
    """A user-defined spending category with an optional monthly budget."""

    name: str = "Uncategorized"
    monthly_budget: float = 0.0

    @field_validator("name", mode="before")
    @classmethod
    def fill_blank_name(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Uncategorized"
        return v

    @field_validator("monthly_budget", mode="before")
    @classmethod
    def parse_budget(cls, v: Any) -> float:
        return _to_float(v)


class InvestmentAssetRecord(_Record):
    """A holding in the investment portfolio."""

    current_value: float = 0.0
    cost_basis: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def total_value_fallback(cls, data: Any) -> Any:
        if isinstance(data, dict) and not _to_float(data.get("current_value")):
            data = dict(data)
            data["current_value"] = data.get("total_value")
        return data

    @field_validator("current_value", "cost_basis", mode="before")
    @classmethod
    def parse_amounts(cls, v: Any) -> float:
        return _to_float(v)
