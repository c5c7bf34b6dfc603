from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Float, DateTime, JSON, ForeignKey
from typing import Optional, Dict, Any, List

from .user import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Order(Base):
    """One customer's book job. Nested value objects live in JSON columns."""
    __tablename__ = 'orders'
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    customer: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    story: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    reference_images: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    final_pdf: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    cover_image: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    assigned_to_designer: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    assigned_to_printer: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    international_shipping_info: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    domestic_shipping_info: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    activity_log: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
