# Overview: Service-layer operations for permission; owner/employee capability checks.

"""
Permission Checking

Capabilities are (area, action) pairs, written "area:action".

ROLES:
- owner: every action in every area, on the stores they own
- employee: only the actions listed in User.permissions, and only on
  the owner's stores listed in User.assigned_store_ids

DESIGN PRINCIPLES:
- Fail closed: unknown areas and actions are never granted
- Services trust their callers; routes check before calling
"""

from ..models import Store, User

AREAS = ("clients", "inventory", "invoices", "stores")
ACTIONS = ("view", "create", "edit", "delete")


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def normalize_permissions(permissions: dict) -> dict:
    """
    Validate an employee permission map.

    {"invoices": ["view", "create", "view"]} -> {"invoices": ["create", "view"]}
    """
    if not isinstance(permissions, dict):
        raise ValueError("permissions must be an object")

    normalized = {}
    for area, actions in permissions.items():
        if area not in AREAS:
            raise ValueError(f"Unknown permission area: {area}")
        if not isinstance(actions, list):
            raise ValueError(f"permissions.{area} must be a list")
        unknown = [action for action in actions if action not in ACTIONS]
        if unknown:
            raise ValueError(f"Unknown actions for {area}: {unknown}")
        normalized[area] = sorted(set(actions))
    return normalized


def has_permission(user: User, area: str, action: str) -> bool:
    if not user or not user.is_active:
        return False
    if area not in AREAS or action not in ACTIONS:
        return False
    if user.is_owner:
        return True
    return action in (user.permissions or {}).get(area, [])


def can_access_store(user: User, store: Store) -> bool:
    """Owners reach their own stores; employees their assigned stores of their owner."""
    if not user or not store:
        return False
    if user.is_owner:
        return store.owner_id == user.id
    return store.owner_id == user.owner_id and store.id in (user.assigned_store_ids or [])


def require_permission(user: User, area: str, action: str) -> None:
    if not has_permission(user, area, action):
        raise PermissionDeniedError(f"Permission denied: {area}:{action}")
