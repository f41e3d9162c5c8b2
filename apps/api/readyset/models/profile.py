import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column

from readyset.db.base import Base


class UserType(str, enum.Enum):
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    HELPDESK = "HELPDESK"
    DRIVER = "DRIVER"
    CLIENT = "CLIENT"
    VENDOR = "VENDOR"


ADMIN_USER_TYPES = frozenset({UserType.ADMIN.value, UserType.SUPER_ADMIN.value})


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    type: Mapped[UserType] = mapped_column(
        Enum(UserType, name="user_type"), nullable=False, default=UserType.CLIENT
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
