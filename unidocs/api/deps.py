from unidocs.db import get_db
from unidocs.services.auth_dependencies import (
    optional_principal,
    require_role,
    require_user_auth,
)
from unidocs.services.clock import Clock, system_clock


def get_clock() -> Clock:
    return system_clock


__all__ = [
    "get_clock",
    "get_db",
    "optional_principal",
    "require_role",
    "require_user_auth",
]
