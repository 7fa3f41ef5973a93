"""
User management REST endpoints.

The handlers only orchestrate: the validator checks uniqueness, the user
service mutates state, and the mail service is queued after a successful
create. Users are returned as UserSummary so that the authority association
is only loaded where a handler asks for it.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, Request, status
from sqlalchemy.orm import Session
from starlette.convertors import Convertor, register_url_convertor
from app.core.config import settings
from app.core.constants import Authorities, USER_ENTITY_NAME
from app.core.database import get_db
from app.core.exceptions import (
    BadRequestAlertError, ConflictError, NotFoundError, EMAIL_EXISTS, ID_EXISTS, INVALID_SORT, USER_EXISTS,
)
from app.api.dependencies import RequireAuthority
from app.models.user import User
from app.schemas.user import ManagedUser, UserSummary, user_summary_from
from app.services.mail_service import MailService, get_mail_service
from app.services.user_service import user_service
from app.services.user_validator import user_validator
from app.utils.header_utils import (
    create_entity_creation_alert, create_entity_deletion_alert, create_entity_update_alert,
)
from app.utils.pagination import PageParams, generate_pagination_headers, parse_sort

logger = logging.getLogger(__name__)


class UsernameConvertor(Convertor):
    """Only route path segments that look like a username"""
    regex = "[_'.@A-Za-z0-9-]+"

    def convert(self, value: str) -> str:
        return value

    def to_string(self, value: str) -> str:
        return value


register_url_convertor("username", UsernameConvertor())

router = APIRouter(prefix="/users", tags=["users"])

require_admin = RequireAuthority(Authorities.ADMIN)

USER_NOT_FOUND_MESSAGE = "User not found"

# Columns GET /users may be sorted by
SORTABLE_FIELDS = ("username", "email", "first_name", "last_name", "activated", "created_at", "updated_at")


@router.post("", response_model=UserSummary, status_code=status.HTTP_201_CREATED)
async def create_user(
    managed_user: ManagedUser,
    response: Response,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    mail: MailService = Depends(get_mail_service)
):
    """
    Create a new user if the username and email are not already used.

    The user starts inactive; an email with an activation link is sent
    after the user is stored.
    """
    logger.debug(f"REST request to save User : {managed_user}")

    if managed_user.id is not None:
        raise BadRequestAlertError("A new user cannot already have an ID", USER_ENTITY_NAME, ID_EXISTS)
    # Lowercase the username before comparing with database
    if user_validator.is_username_taken(db, managed_user.username):
        raise ConflictError("Login name already used", USER_ENTITY_NAME, USER_EXISTS)
    if user_validator.is_email_taken(db, managed_user.email):
        raise ConflictError("Email is already in use", USER_ENTITY_NAME, EMAIL_EXISTS)

    new_user = user_service.create_user(db, managed_user, created_by=admin.username)
    background_tasks.add_task(mail.send_creation_email, new_user)

    response.headers["Location"] = f"/api/users/{new_user.username}"
    response.headers.update(create_entity_creation_alert(USER_ENTITY_NAME, new_user.username))
    return user_summary_from(new_user)


@router.put("", response_model=UserSummary)
async def update_user(
    managed_user: ManagedUser,
    response: Response,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update an existing user; 404 if it disappeared before the update"""
    logger.debug(f"REST request to update User : {managed_user}")

    if user_validator.is_email_taken(db, managed_user.email, exclude_id=managed_user.id):
        raise ConflictError("Email is already in use", USER_ENTITY_NAME, EMAIL_EXISTS)
    if user_validator.is_username_taken(db, managed_user.username, exclude_id=managed_user.id):
        raise ConflictError("Login name already used", USER_ENTITY_NAME, USER_EXISTS)

    updated = user_service.update_user(db, managed_user, modified_by=admin.username)
    if updated is None:
        raise NotFoundError(USER_NOT_FOUND_MESSAGE)

    response.headers.update(create_entity_update_alert(USER_ENTITY_NAME, managed_user.username))
    return updated


@router.get("", response_model=List[UserSummary])
async def get_all_users(
    request: Request,
    response: Response,
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: Optional[str] = Query(None, description="field[,asc|desc]"),
    db: Session = Depends(get_db)
):
    """List users one page at a time, with X-Total-Count and Link headers"""
    try:
        sort_field, ascending = parse_sort(sort, SORTABLE_FIELDS, default="username")
    except ValueError as e:
        raise BadRequestAlertError(str(e), USER_ENTITY_NAME, INVALID_SORT)
    page_params = PageParams(
        page=page,
        size=size or settings.DEFAULT_PAGE_SIZE,
        sort_field=sort_field,
        ascending=ascending,
    )
    result = user_service.get_all_managed_users(db, page_params)
    response.headers.update(generate_pagination_headers(result, request.url.path))
    return result.content


@router.get("/authorities", response_model=List[str])
async def get_authorities(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """All role names known to the system"""
    return user_service.get_authorities(db)


@router.get("/{username:username}", response_model=UserSummary)
async def get_user(username: str, db: Session = Depends(get_db)):
    logger.debug(f"REST request to get User : {username}")
    found = user_service.get_user_with_authorities(db, username)
    if found is None:
        raise NotFoundError(USER_NOT_FOUND_MESSAGE)
    user, authorities = found
    return user_summary_from(user, authorities)


@router.delete("/{username:username}")
async def delete_user(
    username: str,
    response: Response,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a user; deleting an unknown username also succeeds"""
    logger.debug(f"REST request to delete User: {username}")
    user_service.delete_user(db, username)
    response.headers.update(create_entity_deletion_alert(USER_ENTITY_NAME, username))
    return {"message": "User deleted successfully"}
