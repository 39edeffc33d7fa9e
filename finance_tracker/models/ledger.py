"""
Core Data Models for the Finance Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for the document store and for logging
4. Stay immutable once they are part of a committed snapshot

DESIGN DECISION: Amounts are Decimal everywhere past the data-model boundary.
Legacy documents may hold text or float amounts; they are converted once,
on decode, through their string form so no float drift reaches the sums.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


GOAL_DOCUMENT_ID = "incomeGoal"
SETTINGS_COLLECTION = "settings"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecordKind(str, Enum):
    """The two record collections kept per user."""
    DEBTS = "debts"
    INCOMES = "incomes"

    @property
    def label(self) -> str:
        return "Debt" if self is RecordKind.DEBTS else "Income"


class ViewMode(str, Enum):
    """Whether aggregation is restricted to one calendar month."""
    MONTHLY = "monthly"
    ALL_TIME = "all-time"


class CategoryFilter(str, Enum):
    """
    Which derived bucket drives the transaction list.

    The three non-ALL values double as the bucket identity keys used by the
    chart and the table.
    """
    ALL = "all"
    INCOME = "income"
    OUTSTANDING = "outstanding"
    PAID = "paid"


class NotificationLevel(str, Enum):
    """Severity of a user-facing notification."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# =============================================================================
# COERCION HELPERS
# =============================================================================

def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse a stored date value into an aware UTC datetime.

    Accepts datetimes, dates and ISO-8601 strings (a trailing "Z" included).
    Naive values are taken as UTC. Anything unparsable returns None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """
    Convert a number or numeric text to Decimal via its string form.

    Raises:
        ValueError: If the value is not numeric or not finite
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# IDENTITY & CALENDAR
# =============================================================================

class UserScope(BaseModel):
    """
    The opaque user scope every path is built from.

    Layout: artifacts/{app_id}/users/{user_id}/{collection}
    """
    model_config = ConfigDict(frozen=True)

    app_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)

    @property
    def root(self) -> str:
        return f"artifacts/{self.app_id}/users/{self.user_id}"

    def collection_path(self, kind: Union[RecordKind, str]) -> str:
        name = kind.value if isinstance(kind, RecordKind) else kind
        return f"{self.root}/{name}"

    @property
    def settings_path(self) -> str:
        return self.collection_path(SETTINGS_COLLECTION)


class YearMonth(BaseModel):
    """A calendar month used as the reference for monthly scoping."""
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12)

    @classmethod
    def of(cls, moment: Union[date, datetime]) -> "YearMonth":
        return cls(year=moment.year, month=moment.month)

    @classmethod
    def current(cls) -> "YearMonth":
        return cls.of(utc_now())

    def contains(self, moment: Optional[datetime]) -> bool:
        """True if the instant falls in this month. Undated records never match."""
        if moment is None:
            return False
        return moment.year == self.year and moment.month == self.month

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


# =============================================================================
# RECORDS
# =============================================================================

class Attachment(BaseModel):
    """A stored attachment: its retrieval URL and its blob path."""
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)


class CreatedRecord(BaseModel):
    """Outcome of storing a new record."""
    model_config = ConfigDict(frozen=True)

    id: str
    attachment: Optional[Attachment] = None
    attachment_error: Optional[str] = Field(
        default=None, description="Why a requested attachment was dropped"
    )


class AttachmentUpload(BaseModel):
    """A file the user picked to attach to a new record."""

    filename: str = Field(..., min_length=1, max_length=255)
    data: bytes
    content_type: str = Field(default="application/octet-stream")

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class LedgerRecord(BaseModel):
    """
    Fields shared by debts and incomes as they come back from the store.

    Decoding is tolerant: legacy amounts are coerced from text, an
    unparsable date becomes None, and empty attachment strings mean
    "no attachment".
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    kind: ClassVar[RecordKind]

    id: str = Field(..., min_length=1)
    name: str = ""
    amount: Decimal
    date: Optional[datetime] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    image_path: Optional[str] = Field(default=None, alias="imagePath")

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Optional[datetime]:
        return parse_instant(v)

    @field_validator("image_url", "image_path", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_attachment_pair(self) -> "LedgerRecord":
        """Attachment URL and path are set together or not at all."""
        if (self.image_url is None) != (self.image_path is None):
            raise ValueError("Attachment URL and path must be set together")
        return self

    @property
    def attachment(self) -> Optional[Attachment]:
        if self.image_path is None:
            return None
        return Attachment(url=self.image_url, path=self.image_path)

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "LedgerRecord":
        """Build a record from a stored document and its id."""
        return cls.model_validate({**data, "id": doc_id})

    def to_document(self) -> dict[str, Any]:
        """Convert to the stored document shape (camelCase, decimal text)."""
        document: dict[str, Any] = {
            "name": self.name,
            "amount": str(self.amount),
            "date": self.date.isoformat() if self.date else None,
        }
        if self.attachment:
            document["imageUrl"] = self.image_url
            document["imagePath"] = self.image_path
        return document


class DebtRecord(LedgerRecord):
    """A debt; only its paid flag ever changes after creation."""
    kind: ClassVar[RecordKind] = RecordKind.DEBTS

    paid: bool = False

    def to_document(self) -> dict[str, Any]:
        document = super().to_document()
        document["paid"] = self.paid
        return document


class IncomeRecord(LedgerRecord):
    """An income entry; immutable except for deletion."""
    kind: ClassVar[RecordKind] = RecordKind.INCOMES


class NewEntry(BaseModel):
    """
    A validated debt or income entry, ready to be written.

    CRITICAL: Only the entry validator should build these from raw form
    input; the constraints here are the last line of defence.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    date: Optional[datetime] = Field(
        default=None,
        description="When the entry happened; defaults to creation time"
    )

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> Optional[datetime]:
        if v is None:
            return None
        parsed = parse_instant(v)
        if parsed is None:
            raise ValueError(f"Unparsable date: {v!r}")
        return parsed


class GoalSetting(BaseModel):
    """The monthly income goal, one per user."""
    model_config = ConfigDict(frozen=True)

    goal: Decimal = Field(..., gt=0)

    @field_validator("goal", mode="before")
    @classmethod
    def coerce_goal(cls, v: Any) -> Decimal:
        return to_decimal(v)

    def to_document(self) -> dict[str, Any]:
        return {"goal": str(self.goal)}


class LedgerSnapshot(BaseModel):
    """
    The committed state a session currently holds.

    Each field is replaced wholesale by a subscription push, never patched.
    """
    model_config = ConfigDict(frozen=True)

    debts: tuple[DebtRecord, ...] = ()
    incomes: tuple[IncomeRecord, ...] = ()
    goal: GoalSetting


# =============================================================================
# VIEW STATE & DERIVED OUTPUTS
# =============================================================================

class ViewState(BaseModel):
    """Selections the user controls: month, view mode, category filter."""
    model_config = ConfigDict(frozen=True)

    reference_month: YearMonth = Field(default_factory=YearMonth.current)
    view_mode: ViewMode = ViewMode.ALL_TIME
    category_filter: CategoryFilter = CategoryFilter.ALL


class LedgerTotals(BaseModel):
    """The three partitioned sums over a scoped record set."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Decimal("0")
    outstanding_debt: Decimal = Decimal("0")
    paid_debt: Decimal = Decimal("0")

    @property
    def grand_total(self) -> Decimal:
        return self.total_income + self.outstanding_debt + self.paid_debt


class LedgerEntry(BaseModel):
    """A record tagged with its kind, as listed in the transaction table."""
    model_config = ConfigDict(frozen=True)

    kind: RecordKind
    record: Union[DebtRecord, IncomeRecord]

    @property
    def bucket(self) -> CategoryFilter:
        """Identity key of the chart bucket this entry is summed into."""
        if self.kind is RecordKind.INCOMES:
            return CategoryFilter.INCOME
        return CategoryFilter.PAID if self.record.paid else CategoryFilter.OUTSTANDING


class LedgerSummary(BaseModel):
    """Everything the aggregation engine derives for one view state."""
    model_config = ConfigDict(frozen=True)

    totals: LedgerTotals
    entries: tuple[LedgerEntry, ...] = ()
    monthly_income: Decimal = Decimal("0")
    goal_progress: Decimal = Decimal("0")


class DebtTrackerSummary(BaseModel):
    """What the debt tracker page lists and totals."""
    model_config = ConfigDict(frozen=True)

    debts: tuple[DebtRecord, ...] = ()
    displayed_total: Decimal = Decimal("0")
    outstanding_total: Decimal = Decimal("0")


class IncomeTrackerSummary(BaseModel):
    """What the income tracker page lists, totals and measures against the goal."""
    model_config = ConfigDict(frozen=True)

    incomes: tuple[IncomeRecord, ...] = ()
    displayed_total: Decimal = Decimal("0")
    monthly_total: Decimal = Decimal("0")
    goal: Decimal
    goal_progress: Decimal = Decimal("0")


class ChartBucket(BaseModel):
    """One of the three aggregate bars/slices shown on the dashboard."""
    model_config = ConfigDict(frozen=True)

    key: CategoryFilter
    label: str
    value: Decimal
    color: str
    active: bool = False


class TableRow(BaseModel):
    """One transaction table line, cross-linked to its chart bucket."""
    model_config = ConfigDict(frozen=True)

    id: str
    kind: RecordKind
    type_label: str
    name: str
    amount: Decimal
    date: Optional[datetime] = None
    paid: Optional[bool] = None
    image_url: Optional[str] = None
    bucket: CategoryFilter
    highlighted: bool = False


class DashboardProjection(BaseModel):
    """Everything the dashboard renders for one view state."""
    model_config = ConfigDict(frozen=True)

    view: ViewState
    totals: LedgerTotals
    buckets: tuple[ChartBucket, ...]
    rows: tuple[TableRow, ...] = ()
    monthly_income: Decimal = Decimal("0")
    goal_progress: Decimal = Decimal("0")


class Notification(BaseModel):
    """Non-fatal feedback for the initiating user action."""
    model_config = ConfigDict(frozen=True)

    level: NotificationLevel
    message: str
    record_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.level is not NotificationLevel.ERROR


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
        description="Type of issue (e.g., 'missing', 'invalid_format', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
