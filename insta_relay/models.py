from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class InstagramAccount(Base):
    __tablename__ = "instagram_accounts"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    instagram_account_id: Mapped[str] = mapped_column(String(64))
    facebook_page_id: Mapped[str] = mapped_column(String(64))
    access_token: Mapped[str] = mapped_column(Text)
    connected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "instagram_account_id": self.instagram_account_id,
            "facebook_page_id": self.facebook_page_id,
            "access_token": self.access_token,
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
        }
