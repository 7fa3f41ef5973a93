from sqlalchemy import Column, String, ForeignKey, Table
from app.core.database import Base


class Authority(Base):
    """A named role (e.g. ROLE_ADMIN) that can be granted to users"""
    __tablename__ = "authorities"

    name = Column(String(50), primary_key=True)


# Link table between users and authorities
# Queried explicitly by the repository, never through an ORM relationship
user_authorities = Table(
    "user_authorities",
    Base.metadata,
    Column("user_id", String(32), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("authority_name", String(50), ForeignKey("authorities.name"), primary_key=True),
)
