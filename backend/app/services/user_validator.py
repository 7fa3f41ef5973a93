from typing import Optional
from sqlalchemy.orm import Session
from app.services.user_repository import user_repository


class UserValidator:
    """
    Uniqueness checks for usernames and emails.

    Usernames are compared lower-cased, emails exactly. When exclude_id is
    given (update), a match owned by that same user is not a conflict.
    These read-then-write checks give friendly error codes; the unique
    indexes on the users table remain the authoritative guard.
    """

    @staticmethod
    def is_username_taken(db: Session, username: str, exclude_id: Optional[str] = None) -> bool:
        existing = user_repository.find_one_by_username(db, username.lower())
        return existing is not None and existing.id != exclude_id

    @staticmethod
    def is_email_taken(db: Session, email: str, exclude_id: Optional[str] = None) -> bool:
        existing = user_repository.find_one_by_email(db, email)
        return existing is not None and existing.id != exclude_id


user_validator = UserValidator()
