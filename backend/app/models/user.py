import uuid
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.sql import func
from app.core.database import Base


def generate_user_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """
    User model representing application accounts.

    Authorities are deliberately not mapped as a relationship: most lookups
    only need identity fields, so roles are loaded on demand through
    user_repository.load_authorities().
    """
    __tablename__ = "users"

    # Opaque identifier assigned at creation, never reassigned
    id = Column(String(32), primary_key=True, default=generate_user_id)
    # Stored lower-cased; the unique index is the authoritative uniqueness guard
    username = Column(String(50), unique=True, index=True, nullable=False)
    # Compared exactly (case-sensitive)
    email = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(60), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    image_url = Column(String(256), nullable=True)
    lang_key = Column(String(6), nullable=True)
    # New accounts stay inactive until the emailed activation link is used
    activated = Column(Boolean, nullable=False, default=False)
    activation_key = Column(String(20), nullable=True, index=True)
    reset_key = Column(String(20), nullable=True)
    reset_date = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_modified_by = Column(String(50), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<User username={self.username!r} activated={self.activated}>"
