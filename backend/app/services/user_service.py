import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Set, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.constants import Authorities, SYSTEM_ACCOUNT, USER_ENTITY_NAME
from app.core.exceptions import (
    BadRequestAlertError, ConflictError, EMAIL_EXISTS, ID_EXISTS, USER_EXISTS,
)
from app.core.security import generate_password, generate_random_key, get_password_hash
from app.models.user import User
from app.schemas.user import (
    ManagedUser, UserSummary, apply_managed_to_user, new_user_from_managed, user_summary_from,
)
from app.services.user_repository import user_repository
from app.services.user_validator import user_validator
from app.utils.pagination import Page, PageParams

logger = logging.getLogger(__name__)


class UserService:
    """Creates, updates, deletes and reads users"""

    @staticmethod
    def create_user(db: Session, managed: ManagedUser, created_by: str = SYSTEM_ACCOUNT) -> User:
        """
        Create an inactive user from a ManagedUser.

        The user gets a random password and an activation key; it becomes
        usable once the emailed activation link is followed. Uniqueness is
        re-checked here, and a unique-index violation at commit (two
        concurrent creates passing the check) is reported the same way.
        """
        if managed.id is not None:
            raise BadRequestAlertError("A new user cannot already have an ID", USER_ENTITY_NAME, ID_EXISTS)
        if user_validator.is_username_taken(db, managed.username):
            raise ConflictError("Login name already used", USER_ENTITY_NAME, USER_EXISTS)
        if user_validator.is_email_taken(db, managed.email):
            raise ConflictError("Email is already in use", USER_ENTITY_NAME, EMAIL_EXISTS)

        user = User(**new_user_from_managed(managed, settings.DEFAULT_LANG_KEY))
        user.hashed_password = get_password_hash(generate_password())
        user.activated = False
        user.activation_key = generate_random_key()
        user.reset_key = generate_random_key()
        user.reset_date = datetime.now(timezone.utc)
        user.created_by = created_by
        user.last_modified_by = created_by

        try:
            db.add(user)
            # Flush so the row exists before its authority links reference it
            db.flush()
            granted = user_repository.set_authorities(db, user, managed.authorities or ())
            if not granted:
                # No role given, or none of the given roles exist
                user_repository.set_authorities(db, user, {Authorities.USER})
            db.commit()
        except IntegrityError:
            db.rollback()
            raise UserService._conflict_for(db, managed, exclude_id=None)

        db.refresh(user)
        logger.info(f"Created Information for User: {user.username}")
        return user

    @staticmethod
    def update_user(
        db: Session,
        managed: ManagedUser,
        modified_by: str = SYSTEM_ACCOUNT,
    ) -> Optional[UserSummary]:
        """
        Apply a ManagedUser to the existing user with the same id.

        Returns None when that user no longer exists.
        """
        if managed.id is None:
            return None
        user = user_repository.find_one_by_id(db, managed.id)
        if user is None:
            return None

        if user_validator.is_email_taken(db, managed.email, exclude_id=user.id):
            raise ConflictError("Email is already in use", USER_ENTITY_NAME, EMAIL_EXISTS)
        if user_validator.is_username_taken(db, managed.username, exclude_id=user.id):
            raise ConflictError("Login name already used", USER_ENTITY_NAME, USER_EXISTS)

        apply_managed_to_user(managed, user)
        user.last_modified_by = modified_by
        if user.activated:
            user.activation_key = None

        try:
            if managed.authorities is not None:
                authorities = user_repository.set_authorities(db, user, managed.authorities)
            else:
                authorities = user_repository.load_authorities(db, user)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise UserService._conflict_for(db, managed, exclude_id=managed.id)

        db.refresh(user)
        logger.info(f"Changed Information for User: {user.username}")
        return user_summary_from(user, authorities)

    @staticmethod
    def delete_user(db: Session, username: str) -> None:
        """Delete a user by username; an absent user is already deleted"""
        user = user_repository.find_one_by_username(db, username.lower())
        if user is None:
            logger.debug(f"User {username} already absent, nothing to delete")
            return
        user_repository.delete(db, user)
        db.commit()
        logger.info(f"Deleted User: {username}")

    @staticmethod
    def get_user_with_authorities(db: Session, username: str) -> Optional[Tuple[User, Set[str]]]:
        user = user_repository.find_one_by_username(db, username.lower())
        if user is None:
            return None
        return user, user_repository.load_authorities(db, user)

    @staticmethod
    def get_all_managed_users(db: Session, page_params: PageParams) -> Page[UserSummary]:
        users, total = user_repository.find_page(
            db, page_params.offset, page_params.size,
            sort_field=page_params.sort_field, ascending=page_params.ascending,
        )
        content = [
            user_summary_from(user, user_repository.load_authorities(db, user))
            for user in users
        ]
        return Page(
            content=content,
            number=page_params.page,
            size=page_params.size,
            total_elements=total,
        )

    @staticmethod
    def get_authorities(db: Session) -> List[str]:
        return user_repository.list_authority_names(db)

    @staticmethod
    def activate_registration(db: Session, key: str) -> Optional[User]:
        """Activate the user holding this activation key"""
        logger.debug(f"Activating user for activation key {key}")
        user = user_repository.find_one_by_activation_key(db, key)
        if user is None:
            return None
        user.activated = True
        user.activation_key = None
        db.commit()
        db.refresh(user)
        logger.info(f"Activated user: {user.username}")
        return user

    @staticmethod
    def remove_not_activated_users(db: Session, now: Optional[datetime] = None) -> int:
        """Delete users that never activated within the retention period"""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=settings.NOT_ACTIVATED_RETENTION_DAYS)
        stale = user_repository.find_not_activated_created_before(db, cutoff)
        for user in stale:
            logger.info(f"Deleting not activated user {user.username}")
            user_repository.delete(db, user)
        if stale:
            db.commit()
        return len(stale)

    @staticmethod
    def seed_defaults(db: Session) -> None:
        """Insert the known authorities and an activated admin account if missing"""
        user_repository.ensure_authorities(db, Authorities.seeded())
        db.flush()
        admin_username = settings.ADMIN_USERNAME.lower()
        if user_repository.find_one_by_username(db, admin_username) is None:
            admin = User(
                username=admin_username,
                email=settings.ADMIN_EMAIL,
                hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
                first_name="Administrator",
                lang_key=settings.DEFAULT_LANG_KEY,
                activated=True,
                created_by=SYSTEM_ACCOUNT,
                last_modified_by=SYSTEM_ACCOUNT,
            )
            db.add(admin)
            db.flush()
            user_repository.set_authorities(db, admin, Authorities.seeded())
            logger.info(f"Created default admin account '{admin_username}'")
        db.commit()

    @staticmethod
    def _conflict_for(db: Session, managed: ManagedUser, exclude_id: Optional[str]) -> ConflictError:
        """Map a unique-index violation back to the field that collided"""
        # Reads the committed rows directly; the pre-check already said "free"
        owner = user_repository.find_one_by_email(db, managed.email)
        if owner is not None and owner.id != exclude_id:
            return ConflictError("Email is already in use", USER_ENTITY_NAME, EMAIL_EXISTS)
        return ConflictError("Login name already used", USER_ENTITY_NAME, USER_EXISTS)


user_service = UserService()
