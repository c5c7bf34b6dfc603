from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Float
from typing import Optional
from .user import Base


class Printer(Base):
    __tablename__ = 'printers'
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    story_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
