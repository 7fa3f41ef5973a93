"""Application-wide constants: login pattern and authority names."""

# Allowed characters of a username (login)
USERNAME_PATTERN = r"^[_'.@A-Za-z0-9-]*$"
USERNAME_MIN_LENGTH = 1
USERNAME_MAX_LENGTH = 50

SYSTEM_ACCOUNT = "system"

# Entity name used in alert headers for user management
USER_ENTITY_NAME = "userManagement"


class Authorities:
    """Role names known to the system"""

    ADMIN = "ROLE_ADMIN"
    USER = "ROLE_USER"
    ANONYMOUS = "ROLE_ANONYMOUS"

    @classmethod
    def seeded(cls) -> list[str]:
        """Roles inserted into the authorities table on startup"""
        return [cls.ADMIN, cls.USER]
