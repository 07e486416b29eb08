from __future__ import annotations

import logging
from typing import Iterable, Optional

from lms.core.errors import ApiError
from lms.models.enums import Role

logger = logging.getLogger("security")


def _coerce_role(value: Role | str | None) -> Optional[Role]:
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def user_has_role(user, role: Role) -> bool:
    return _coerce_role(getattr(user, "role", None)) == role


def user_has_any_role(user, roles: Iterable[Role]) -> bool:
    return _coerce_role(getattr(user, "role", None)) in set(roles)


def require_roles(user, required_roles: Iterable[Role]) -> None:
    """
    Require that the user has at least one of the specified roles.
    Raises ApiError with 403 status if user doesn't have required roles.
    """
    required_roles = list(required_roles)
    if not user_has_any_role(user, required_roles):
        role_names = ", ".join(role.value for role in required_roles)
        logger.warning(
            "role_denied",
            extra={"user_id": getattr(user, "id", None), "error_code": "INSUFFICIENT_PERMISSIONS"},
        )
        raise ApiError.forbidden(f"Access denied. Required roles: {role_names}")


def require_owner(user, owner_id: int, message: str = "Only the course owner can perform this action") -> None:
    if getattr(user, "id", None) != owner_id:
        logger.warning(
            "ownership_denied",
            extra={"user_id": getattr(user, "id", None), "error_code": "INSUFFICIENT_PERMISSIONS"},
        )
        raise ApiError.forbidden(message)
