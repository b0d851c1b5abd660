#!/usr/bin/env python3
import os

from sqlalchemy import select

from migration_gateway.db.session import create_legacy_engine, create_session_factory
from migration_gateway.models import LegacyBase, LegacyUser

DATABASE_URL = os.getenv("LEGACY_DATABASE_URL", "sqlite+pysqlite:///./legacy.db")

DEMO_USERS = [
    {
        "id": "db-163840776835432346",
        "login_name": "legacy-user@gmail.com",
        "username": "legacy-user",
        "given_name": "Legacy",
        "family_name": "User",
        "display_name": "Legacy User",
        "preferred_language": "en",
        "email": "legacy-user@gmail.com",
        "password": "Password1!",
    },
]


def ensure_user(db, fields: dict) -> bool:
    existing = db.scalar(select(LegacyUser).where(LegacyUser.login_name == fields["login_name"]))
    if existing:
        return False
    db.add(LegacyUser(**fields))
    return True


def main():
    engine = create_legacy_engine(DATABASE_URL)
    LegacyBase.metadata.create_all(bind=engine)
    session_factory = create_session_factory(engine)

    with session_factory() as db:
        created = sum(1 for fields in DEMO_USERS if ensure_user(db, fields))
        db.commit()

    print(f"Seed complete: {created} legacy user(s) added to {DATABASE_URL}")


if __name__ == "__main__":
    main()
