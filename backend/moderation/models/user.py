from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # Name columns keep the camelCase keys the account service writes
    firstName: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    middleName: Mapped[str | None] = mapped_column(String(100))
    lastName: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    mobileNumber: Mapped[str | None] = mapped_column(String(32))
    user_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user", index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", index=True
    )
    requested_role: Mapped[str | None] = mapped_column(String(20))
    is_banned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    banned_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ban_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "user_type IN ('superadmin', 'admin', 'user')", name="valid_user_type"
        ),
        CheckConstraint("status IN ('active', 'pending_admin')", name="valid_user_status"),
    )
