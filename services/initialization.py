"""First-run roster seeding."""

import logging
from typing import Iterable, List

from models.enums import PermissionRole
from models.members import MemberBase
from services.members import MemberDirectory

logger = logging.getLogger(__name__)


def seed_default_roster(
    directory: MemberDirectory, names: Iterable[str], bootstrap_admin: str
) -> List[MemberBase]:
    """
    Create the default roster when no member exists yet.

    Every member starts with the default PIN; ``bootstrap_admin`` is promoted
    to Administrator so somebody can manage the rest.

    Returns:
        The created members, empty if the roster already had members
    """
    if directory.list():
        return []

    created = []
    for name in names:
        member = directory.create(name)
        if member.name.lower() == (bootstrap_admin or "").strip().lower():
            member = directory.set_permission(member.member_id, PermissionRole.ADMINISTRATOR)
        created.append(member)

    logger.info(
        "Seeded default roster",
        extra={"member_count": len(created), "bootstrap_admin": bootstrap_admin},
    )
    return created
