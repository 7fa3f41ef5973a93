"""
Record shapes for user management and the mappings between them.

ManagedUser is the request body of create/update, User (app.models.user) is
the persisted entity, and UserSummary is what callers get back. Keeping the
three apart lets the authority association stay lazy: a summary only carries
authorities when the caller loaded them and passed them in.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from app.core.constants import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH, USERNAME_PATTERN
from app.models.user import User

EMAIL_MIN_LENGTH = 5
EMAIL_MAX_LENGTH = 100

# Same shape as a Bean Validation @Email check: dot-separated atoms before
# the @, dot-separated host labels (or an IP literal) after it. Single-label
# hosts such as "localhost" are accepted.
_LOCAL_ATOM = r"[a-zA-Z0-9!#$%&'*+/=?^_`{|}~\u0080-\uFFFF-]+"
_DOMAIN_LABEL = r"[a-zA-Z0-9\u0080-\uFFFF](?:[a-zA-Z0-9\u0080-\uFFFF-]*[a-zA-Z0-9\u0080-\uFFFF])?"
EMAIL_REGEX = re.compile(
    rf"{_LOCAL_ATOM}(?:\.{_LOCAL_ATOM})*"
    rf"@(?:{_DOMAIN_LABEL}(?:\.{_DOMAIN_LABEL})*|\[[0-9]{{1,3}}(?:\.[0-9]{{1,3}}){{3}}\])"
)


class ManagedUser(BaseModel):
    # Absence of id means "create"
    id: Optional[str] = None
    username: str = Field(
        min_length=USERNAME_MIN_LENGTH,
        max_length=USERNAME_MAX_LENGTH,
        pattern=USERNAME_PATTERN,
    )
    # Kept exactly as sent: uniqueness compares emails case-sensitively
    email: str = Field(min_length=EMAIL_MIN_LENGTH, max_length=EMAIL_MAX_LENGTH)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    image_url: Optional[str] = Field(default=None, max_length=256)
    activated: bool = False
    lang_key: Optional[str] = Field(default=None, min_length=2, max_length=6)
    authorities: Optional[Set[str]] = None

    @field_validator("email")
    @classmethod
    def check_email_format(cls, value: str) -> str:
        if not EMAIL_REGEX.fullmatch(value):
            raise ValueError("value is not a valid email address")
        return value


class UserSummary(BaseModel):
    id: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    image_url: Optional[str] = None
    activated: bool
    lang_key: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    # None means "not loaded", not "no roles"
    authorities: Optional[List[str]] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer('created_at')
    def serialize_created_at(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None

    @field_serializer('updated_at')
    def serialize_updated_at(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None


def new_user_from_managed(managed: ManagedUser, default_lang_key: str) -> Dict[str, Any]:
    """Entity fields for a user created from a ManagedUser.

    The username is lower-cased; identifier, password and activation state
    are left to the caller.
    """
    return {
        "username": managed.username.lower(),
        "email": managed.email,
        "first_name": managed.first_name,
        "last_name": managed.last_name,
        "image_url": managed.image_url,
        "lang_key": managed.lang_key or default_lang_key,
    }


def apply_managed_to_user(managed: ManagedUser, user: User) -> User:
    """Copy the editable fields of a ManagedUser onto an existing entity"""
    user.username = managed.username.lower()
    user.email = managed.email
    user.first_name = managed.first_name
    user.last_name = managed.last_name
    user.image_url = managed.image_url
    user.activated = managed.activated
    if managed.lang_key:
        user.lang_key = managed.lang_key
    return user


def user_summary_from(user: User, authorities: Optional[Iterable[str]] = None) -> UserSummary:
    summary = UserSummary.model_validate(user)
    if authorities is not None:
        summary.authorities = sorted(authorities)
    return summary
