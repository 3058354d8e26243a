import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from eapproval.core.database import Base


class ProfileRole(str, Enum):
    """사용자 권한"""

    ADMIN = "admin"
    USER = "user"


class Profile(Base):
    """사용자 프로필 모델

    인사/조직 정보는 외부 관리 대상이며, 결재 엔진은 조회만 한다.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    department: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    position: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        default=ProfileRole.USER.value,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Profile {self.email}>"
