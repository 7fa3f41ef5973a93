"""
Domain errors raised by services and translated to HTTP responses in main.py.

Each BadRequest carries a machine-readable error key (e.g.
"messages.error.user_exists") so clients can localize the message.
"""

from fastapi import status


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BadRequestAlertError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, entity_name: str, error_key: str):
        super().__init__(detail)
        self.entity_name = entity_name
        self.error_key = error_key


class ConflictError(BadRequestAlertError):
    """A unique field (username or email) already belongs to another user"""


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


# Error keys shared by the users routes and the user service
ID_EXISTS = "error.id_exists"
USER_EXISTS = "messages.error.user_exists"
EMAIL_EXISTS = "messages.error.email_exists"
INVALID_SORT = "error.invalid_sort"
