"""
Database Models - Query-First Table Design

The same logical fact is materialized under several keys, one table per read
pattern, the way a wide-column store is modelled:

- PromotionById: canonical promotion row
- ProductByPromo: membership, addressable by promotion
- PromoByProduct: membership, addressable by product (with a snapshot of the
  promotion's type and date range taken at write time)
- PromotionActiveByDay: one row per (day, promotion), derived from the date range

Primary keys list the partition key first, then the clustering key. There are
no foreign keys; the application keeps the tables in step.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all store tables"""
    pass


class PromotionById(Base):
    """Canonical promotion record, one row per promotion"""

    __tablename__ = "promotions_by_id"

    promo_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[Optional[str]] = mapped_column(String(100))
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    description: Mapped[Optional[str]] = mapped_column(Text)
    stackable: Mapped[bool] = mapped_column(Boolean, default=False)
    min_order_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    limit_per_customer: Mapped[int] = mapped_column(Integer, default=0)
    global_quota: Mapped[Optional[int]] = mapped_column(Integer)
    channels: Mapped[List[str]] = mapped_column(JSON, default=list)

    # Serves the promotions-by-type projection
    __table_args__ = (
        Index("idx_promotions_by_id_type", "type"),
    )


class ProductByPromo(Base):
    """Membership view keyed by promotion"""

    __tablename__ = "products_by_promo"

    promo_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    discount_percent: Mapped[int] = mapped_column(Integer, default=0)
    discount_amount: Mapped[int] = mapped_column(Integer, default=0)
    gift_product_id: Mapped[Optional[str]] = mapped_column(String(64))


class PromoByProduct(Base):
    """Membership view keyed by product"""

    __tablename__ = "promos_by_product"

    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    promo_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[Optional[str]] = mapped_column(String(100))
    discount_percent: Mapped[int] = mapped_column(Integer, default=0)
    discount_amount: Mapped[int] = mapped_column(Integer, default=0)
    gift_product_id: Mapped[Optional[str]] = mapped_column(String(64))
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)


class PromotionActiveByDay(Base):
    """Active-day view, one row per calendar day per promotion"""

    __tablename__ = "promotions_active_by_day"

    day: Mapped[date] = mapped_column(Date, primary_key=True)
    promo_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[Optional[str]] = mapped_column(String(100))
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
