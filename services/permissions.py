"""Who may do what. Managers act like administrators except for role changes and week deletion."""

from models.enums import PermissionRole
from models.members import MemberBase
from utils.errors import PermissionDeniedError

_RANK = {
    PermissionRole.USER: 0,
    PermissionRole.MANAGER: 1,
    PermissionRole.ADMINISTRATOR: 2,
}


def has_role(member: MemberBase, minimum: PermissionRole) -> bool:
    return _RANK[member.permission_role] >= _RANK[minimum]


def is_manager_or_admin(member: MemberBase) -> bool:
    return has_role(member, PermissionRole.MANAGER)


def is_administrator(member: MemberBase) -> bool:
    return has_role(member, PermissionRole.ADMINISTRATOR)


def can_edit_member(actor: MemberBase, member_id: str) -> bool:
    return actor.member_id == member_id or is_manager_or_admin(actor)


def can_edit_bis(actor: MemberBase, member_id: str) -> bool:
    return can_edit_member(actor, member_id)


def can_manage_loot(actor: MemberBase) -> bool:
    """Assign, undo and reassign loot."""
    return is_manager_or_admin(actor)


def can_create_week(actor: MemberBase) -> bool:
    return is_manager_or_admin(actor)


def can_delete_week(actor: MemberBase) -> bool:
    return is_administrator(actor)


def can_change_permissions(actor: MemberBase) -> bool:
    return is_administrator(actor)


def can_create_member(actor: MemberBase) -> bool:
    return is_manager_or_admin(actor)


def can_delete_member(actor: MemberBase) -> bool:
    return is_administrator(actor)


def ensure(allowed: bool, action: str) -> None:
    """Raise PermissionDeniedError unless ``allowed``."""
    if not allowed:
        raise PermissionDeniedError(f"You do not have permission to {action}")
