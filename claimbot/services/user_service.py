import re
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from claimbot.models import User

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


def is_e164(phone_number: str) -> bool:
    return bool(E164_PATTERN.match(phone_number or ""))


class UserRepository:
    """User reads and writes inside the caller's unit of work. Never commits."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_phone(self, phone_number: str) -> Optional[User]:
        return self.db.query(User).filter(User.phone_number == phone_number).first()

    def create(self, phone_number: str) -> User:
        if not is_e164(phone_number):
            raise ValueError("Invalid phone number format - must be E.164 (+447700900123)")

        user = User(phone_number=phone_number, created_at=datetime.now(timezone.utc))
        self.db.add(user)
        self.db.flush()
        return user

    def mark_verified(self, user: User) -> User:
        user.verified_at = datetime.now(timezone.utc)
        self.db.flush()
        return user
