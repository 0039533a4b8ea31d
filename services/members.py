"""
Member directory: roster members, their profiles, PINs and BiS targets.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from models.enums import MemberRole, PermissionRole, SpecType
from models.members import BisTarget, GearItem, MemberBase, MemberUpdate
from services.repositories import LootStore
from utils.errors import NotFoundError, ValidationError
from utils.security import DEFAULT_PIN, hash_pin

logger = logging.getLogger(__name__)


class MemberDirectory:
    """Owns roster members. Unknown ids raise ``NotFoundError`` everywhere."""

    def __init__(self, store: LootStore):
        self.store = store

    def create(self, name: str, role: MemberRole = MemberRole.DPS) -> MemberBase:
        """
        Add a member with User permissions and the default PIN.

        Args:
            name: Display name
            role: Raid role, DPS unless given

        Returns:
            The stored member
        """
        now = datetime.now(timezone.utc)
        try:
            member = MemberBase(
                name=name,
                role=role,
                pin_hash=hash_pin(DEFAULT_PIN),
                created_at=now,
                updated_at=now,
            )
        except ValueError as e:
            raise ValidationError(f"Invalid member: {e}")

        self.store.put_member(member)
        logger.info(
            "Created member",
            extra={"member_id": member.member_id, "member_name": member.name},
        )
        return member

    def get(self, member_id: str) -> MemberBase:
        member = self.store.get_member(member_id)
        if member is None:
            raise NotFoundError("Member", member_id)
        return member

    def list(self) -> List[MemberBase]:
        return sorted(self.store.list_members(), key=lambda m: m.name.lower())

    def find_by_name(self, name: str) -> Optional[MemberBase]:
        """Case-insensitive name lookup; None when nobody has the name."""
        if not name or not name.strip():
            return None
        return self.store.find_member_by_name(name)

    def update(self, member_id: str, patch: MemberUpdate) -> MemberBase:
        """Patch name, role and profile image. Other fields are not editable here."""
        member = self.get(member_id)
        changes = patch.model_dump(exclude_unset=True)
        # Explicit nulls only make sense for the image
        changes = {
            k: v for k, v in changes.items() if v is not None or k == "profile_image_url"
        }
        if not changes:
            return member

        try:
            updated = MemberBase.model_validate(
                {
                    **member.model_dump(),
                    **changes,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
        except ValueError as e:
            raise ValidationError(f"Invalid member update: {e}")

        self.store.put_member(updated)
        return updated

    def delete(self, member_id: str) -> None:
        """Remove a member. Their assignments stay and later read as ``Unknown``."""
        if not self.store.delete_member(member_id):
            raise NotFoundError("Member", member_id)
        logger.info("Deleted member", extra={"member_id": member_id})

    def set_bis_link(
        self,
        member_id: str,
        spec_type: SpecType,
        link: str,
        items: List[GearItem],
    ) -> MemberBase:
        """
        Replace one spec's BiS link and items.

        Acquisition rows recorded under the previous link are kept, so switching
        back restores the old progress.

        Raises:
            ValidationError: Extra spec, empty link or two items for one slot
            NotFoundError: Unknown member
        """
        if spec_type == SpecType.EXTRA:
            raise ValidationError("Extra has no BiS target")
        if not link or not link.strip():
            raise ValidationError("BiS link must not be empty")

        seen = set()
        for item in items:
            if item.slot in seen:
                raise ValidationError(
                    f"Duplicate BiS slot {item.slot.value}",
                    {"slot": item.slot.value},
                )
            seen.add(item.slot)

        member = self.get(member_id)
        target = BisTarget(link=link.strip(), items=[i.model_copy() for i in items])
        field = "main_spec" if spec_type == SpecType.MAIN_SPEC else "off_spec"
        updated = member.model_copy(
            update={field: target, "updated_at": datetime.now(timezone.utc)}
        )
        self.store.put_member(updated)

        logger.info(
            "Updated BiS link",
            extra={
                "member_id": member_id,
                "spec_type": spec_type.value,
                "item_count": len(items),
            },
        )
        return updated

    def set_permission(self, member_id: str, role: PermissionRole) -> MemberBase:
        member = self.get(member_id)
        updated = member.model_copy(
            update={"permission_role": role, "updated_at": datetime.now(timezone.utc)}
        )
        self.store.put_member(updated)
        logger.info(
            "Changed permission role",
            extra={"member_id": member_id, "permission_role": role.value},
        )
        return updated

    def set_pin_hash(self, member_id: str, pin_hash: str) -> MemberBase:
        member = self.get(member_id)
        updated = member.model_copy(
            update={"pin_hash": pin_hash, "updated_at": datetime.now(timezone.utc)}
        )
        self.store.put_member(updated)
        return updated
