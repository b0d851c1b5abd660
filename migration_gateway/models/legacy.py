from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from migration_gateway.schemas.legacy import LegacyUserRecord


class LegacyBase(DeclarativeBase):
    pass


class LegacyUser(LegacyBase):
    """Row of the legacy user directory. Only ever read by the gateway."""

    __tablename__ = "legacy_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    login_name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str] = mapped_column(String(255), default="")
    given_name: Mapped[str] = mapped_column(String(255), default="")
    family_name: Mapped[str] = mapped_column(String(255), default="")
    display_name: Mapped[str] = mapped_column(String(255), default="")
    preferred_language: Mapped[str] = mapped_column(String(16), default="en")
    email: Mapped[str] = mapped_column(String(255))
    password: Mapped[str] = mapped_column(String(255))

    def to_record(self) -> LegacyUserRecord:
        return LegacyUserRecord(
            legacy_id=self.id,
            login_name=self.login_name,
            username=self.username or None,
            given_name=self.given_name or "",
            family_name=self.family_name or "",
            display_name=self.display_name or "",
            preferred_language=self.preferred_language or "en",
            email=self.email,
            password=self.password,
        )
