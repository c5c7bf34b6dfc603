from __future__ import annotations
from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy import String, Float, DateTime, text
from typing import Optional

Base = declarative_base()


class User(Base):
    __tablename__ = 'users'
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False, default='')
    role: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    # Sales only
    hourly_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # Designer only; overrides STORY_PRICE
    story_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        if not self.password_hash or not raw:
            return False
        return check_password_hash(self.password_hash, raw)

__all__ = ['Base', 'User']
