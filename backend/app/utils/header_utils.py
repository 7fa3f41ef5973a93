from typing import Dict
from app.core.config import settings


def _prefix() -> str:
    return f"X-{settings.APP_NAME}"


def create_alert(message: str, param: str) -> Dict[str, str]:
    """Headers the frontend reads to show a success notification"""
    return {
        f"{_prefix()}-alert": message,
        f"{_prefix()}-params": param,
    }


def create_entity_creation_alert(entity_name: str, param: str) -> Dict[str, str]:
    return create_alert(f"{entity_name}.created", param)


def create_entity_update_alert(entity_name: str, param: str) -> Dict[str, str]:
    return create_alert(f"{entity_name}.updated", param)


def create_entity_deletion_alert(entity_name: str, param: str) -> Dict[str, str]:
    return create_alert(f"{entity_name}.deleted", param)


def create_failure_alert(entity_name: str, error_key: str) -> Dict[str, str]:
    return {
        f"{_prefix()}-error": error_key,
        f"{_prefix()}-params": entity_name,
    }
