"""
Typed inputs and records for the promotion engine.

Every optional input field and its default is listed here explicitly and
validated before any write is issued.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from promo_catalog.exceptions import ValidationError

DEFAULT_CHANNELS = ["online"]

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_day(value: Any) -> Optional[date]:
    """
    Parse an ISO calendar date (YYYY-MM-DD).

    Blank strings and None mean "absent". Datetime strings and other
    formats are rejected.
    """
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            return date.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(
                f"Invalid calendar date: {value!r}",
                details={"value": value, "expected": "YYYY-MM-DD"},
            ) from e
    raise ValidationError(
        f"Invalid calendar date: {value!r}",
        details={"value": repr(value), "expected": "YYYY-MM-DD"},
    )


def coerce(model: Type[ModelT], data: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """
    Validate caller input into ``model``.

    Raises:
        ValidationError: With the field errors in ``details``
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError(
            f"Invalid {model.__name__} input",
            details={"errors": errors},
        ) from e


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and start > end:
        raise ValueError(f"start_date {start} is after end_date {end}")


# =============================================================================
# Promotion
# =============================================================================


class _PromotionFields(BaseModel):
    """Field parsing shared by create and update inputs."""

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("start_date", "end_date", mode="before", check_fields=False)
    @classmethod
    def parse_dates(cls, v: Any) -> Optional[date]:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            try:
                return date.fromisoformat(v)
            except ValueError as e:
                raise ValueError("must be an ISO calendar date (YYYY-MM-DD)") from e
        return v

    @field_validator("channels", mode="before", check_fields=False)
    @classmethod
    def split_channels(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("channels", check_fields=False)
    @classmethod
    def normalize_channels(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        # Stored as a set
        if v is None:
            return v
        return sorted({channel for channel in v if channel})


class PromotionCreate(_PromotionFields):
    """Input for creating a promotion."""

    promo_id: str = Field(..., min_length=1, max_length=64)
    name: Optional[str] = Field(default=None, max_length=255)
    type: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None
    stackable: bool = False
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    limit_per_customer: int = Field(default=0, ge=0)
    global_quota: Optional[int] = Field(default=None, ge=0)
    channels: List[str] = Field(default_factory=lambda: list(DEFAULT_CHANNELS))

    @model_validator(mode="after")
    def check_date_range(self) -> "PromotionCreate":
        _check_range(self.start_date, self.end_date)
        return self


class PromotionUpdate(_PromotionFields):
    """Input for updating a promotion. Only explicitly supplied fields apply."""

    name: Optional[str] = Field(default=None, max_length=255)
    type: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None
    stackable: Optional[bool] = None
    min_order_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    limit_per_customer: Optional[int] = Field(default=None, ge=0)
    global_quota: Optional[int] = Field(default=None, ge=0)
    channels: Optional[List[str]] = None

    @model_validator(mode="after")
    def check_date_range(self) -> "PromotionUpdate":
        _check_range(self.start_date, self.end_date)
        return self

    def changes(self) -> Dict[str, Any]:
        """Fields the caller supplied."""
        return self.model_dump(exclude_unset=True)


class Promotion(BaseModel):
    """Canonical promotion record."""

    model_config = ConfigDict(from_attributes=True)

    promo_id: str
    name: Optional[str] = None
    type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None
    stackable: bool = False
    min_order_amount: Decimal = Decimal("0")
    limit_per_customer: int = 0
    global_quota: Optional[int] = None
    channels: List[str] = Field(default_factory=lambda: list(DEFAULT_CHANNELS))

    @property
    def has_date_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class PromotionSummary(BaseModel):
    """Promotion-by-type projection row."""

    type: Optional[str] = None
    promo_id: str
    name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# =============================================================================
# Membership
# =============================================================================


class MembershipCreate(BaseModel):
    """Discount terms linking a product to a promotion."""

    model_config = ConfigDict(str_strip_whitespace=True)

    product_id: str = Field(..., min_length=1, max_length=64)
    discount_percent: int = Field(default=0, ge=0, le=100)
    discount_amount: int = Field(default=0, ge=0)
    gift_product_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator("gift_product_id", mode="before")
    @classmethod
    def blank_gift_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class MembershipFact(BaseModel):
    """
    One membership row.

    ``type``, ``start_date`` and ``end_date`` are only populated when read
    from the product-keyed view, where they are a snapshot taken at write time.
    """

    promo_id: str
    product_id: str
    discount_percent: int = 0
    discount_amount: int = 0
    gift_product_id: Optional[str] = None
    type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def terms(self) -> Dict[str, Any]:
        """Discount terms, comparable across both views."""
        return {
            "discount_percent": self.discount_percent,
            "discount_amount": self.discount_amount,
            "gift_product_id": self.gift_product_id,
        }


# =============================================================================
# Active days
# =============================================================================


class ActiveDayFact(BaseModel):
    """Promotion active on one calendar day."""

    day: date
    promo_id: str
    name: Optional[str] = None
    type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
