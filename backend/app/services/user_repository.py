from typing import Iterable, List, Optional, Set, Tuple
from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session
from app.models.authority import Authority, user_authorities
from app.models.user import User


class UserRepository:
    """Persistence access for users and their authority links"""

    @staticmethod
    def find_one_by_username(db: Session, username: str) -> Optional[User]:
        """Exact match on the stored (lower-cased) username"""
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def find_one_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def find_one_by_id(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def find_one_by_activation_key(db: Session, activation_key: str) -> Optional[User]:
        return db.query(User).filter(User.activation_key == activation_key).first()

    @staticmethod
    def find_not_activated_created_before(db: Session, cutoff) -> List[User]:
        return db.query(User).filter(
            User.activated.is_(False),
            User.created_at < cutoff
        ).all()

    @staticmethod
    def find_page(
        db: Session,
        offset: int,
        limit: int,
        sort_field: str = "username",
        ascending: bool = True,
    ) -> Tuple[List[User], int]:
        """Return one page of users in the requested order, plus the total count"""
        column = getattr(User, sort_field)
        # Username is unique, so it makes the order total
        order = [column.asc() if ascending else column.desc(), User.username]
        total = db.query(User).count()
        users = db.query(User).order_by(*order).offset(offset).limit(limit).all()
        return users, total

    @staticmethod
    def load_authorities(db: Session, user: User) -> Set[str]:
        """Second step of the two-step fetch: the user's role names"""
        rows = db.execute(
            select(user_authorities.c.authority_name).where(user_authorities.c.user_id == user.id)
        )
        return {row[0] for row in rows}

    @staticmethod
    def set_authorities(db: Session, user: User, names: Iterable[str]) -> Set[str]:
        """Replace the user's roles with the known ones among `names`.

        Unknown role names are ignored. Returns the roles actually granted.
        """
        known = UserRepository.filter_known_authorities(db, names)
        db.execute(delete(user_authorities).where(user_authorities.c.user_id == user.id))
        if known:
            db.execute(
                insert(user_authorities),
                [{"user_id": user.id, "authority_name": name} for name in sorted(known)]
            )
        return known

    @staticmethod
    def filter_known_authorities(db: Session, names: Iterable[str]) -> Set[str]:
        wanted = set(names)
        if not wanted:
            return set()
        rows = db.query(Authority.name).filter(Authority.name.in_(wanted)).all()
        return {row[0] for row in rows}

    @staticmethod
    def list_authority_names(db: Session) -> List[str]:
        return [row[0] for row in db.query(Authority.name).order_by(Authority.name).all()]

    @staticmethod
    def ensure_authorities(db: Session, names: Iterable[str]) -> None:
        """Insert any missing authorities (startup seeding)"""
        existing = set(UserRepository.list_authority_names(db))
        for name in names:
            if name not in existing:
                db.add(Authority(name=name))

    @staticmethod
    def delete(db: Session, user: User) -> None:
        db.execute(delete(user_authorities).where(user_authorities.c.user_id == user.id))
        db.delete(user)


user_repository = UserRepository()
