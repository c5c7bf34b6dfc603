from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Float, DateTime, ForeignKey, CheckConstraint
from typing import Optional
from .user import Base

# Append-only accounting rows. No update/delete paths exist for these tables.


class HoursLog(Base):
    __tablename__ = 'hours_logs'
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    hours: Mapped[float] = mapped_column(Float, nullable=False)
    # rate captured when the hours were logged
    rate: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class Bonus(Base):
    __tablename__ = 'bonuses'
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)


class Payment(Base):
    __tablename__ = 'payments'
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(ForeignKey('users.id'), nullable=True, index=True)
    printer_id: Mapped[Optional[str]] = mapped_column(ForeignKey('printers.id'), nullable=True, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint('(user_id IS NULL) != (printer_id IS NULL)', name='ck_payment_single_payee'),
    )

__all__ = ['HoursLog', 'Bonus', 'Payment']
