"""
BiS handlers for the raid loot tracker API.

Members set their gear link (imported from xivgear unless items are given)
and tick off acquired pieces and upgrade materials by hand. Managers and
Administrators may do this for anyone.
"""

import logging

from models.enums import SpecType, parse_slot
from models.members import BisLinkUpdate, member_to_dict
from services import permissions
from services.container import get_tracker
from utils.decorators import (extract_path_params, lambda_handler,
                              require_auth, require_permission,
                              validate_json_body)
from utils.errors import ValidationError
from utils.responses import success_response

logger = logging.getLogger(__name__)


def _spec_type(value) -> SpecType:
    try:
        spec_type = SpecType(value or SpecType.MAIN_SPEC.value)
    except ValueError:
        raise ValidationError(f"Unknown spec type: {value}")
    if spec_type == SpecType.EXTRA:
        raise ValidationError("Extra has no BiS target")
    return spec_type


def _slot(value):
    try:
        return parse_slot(value)
    except ValueError as e:
        raise ValidationError(str(e))


@lambda_handler()
@extract_path_params("member_id")
@require_auth
@require_permission(permissions.can_edit_bis, "edit this BiS", with_path_params=True)
@validate_json_body(required_fields=["link"])
def set_bis_link(event, context):
    """
    Replace a spec's BiS link and items.

    PUT /members/{member_id}/bis

    When ``items`` is omitted the set is imported from the xivgear link.
    Progress recorded under an earlier link is kept and comes back if that
    link is set again.
    """
    tracker = get_tracker()
    request = BisLinkUpdate(**event["json_body"])
    items = request.items
    if items is None:
        items = tracker.xivgear.fetch_gear(request.link)

    member = tracker.members.set_bis_link(
        event["path_params"]["member_id"], request.spec_type, request.link, items
    )
    return success_response(
        data={
            "member": member_to_dict(member),
            "items": [
                v.model_dump(mode="json")
                for v in tracker.acquisitions.bis_view(member, request.spec_type)
            ],
        },
        message=f"{request.spec_type.value} BiS updated with {len(items)} items",
    )


@lambda_handler()
@extract_path_params("member_id", "slot")
@require_auth
@validate_json_body()
def update_item(event, context):
    """
    Mark a BiS piece or its upgrade material as acquired or not.

    PUT /members/{member_id}/bis/{slot}

    Body: ``spec_type``, optional ``link`` (defaults to the current one), and
    ``is_acquired`` and/or ``upgrade_material_acquired``.
    """
    tracker = get_tracker()
    member_id = event["path_params"]["member_id"]
    permissions.ensure(
        permissions.can_edit_bis(event["member"], member_id), "edit this BiS"
    )

    body = event["json_body"]
    if "is_acquired" not in body and "upgrade_material_acquired" not in body:
        raise ValidationError("Nothing to update: give is_acquired or upgrade_material_acquired")

    spec_type = _spec_type(body.get("spec_type"))
    slot = _slot(event["path_params"]["slot"])
    member = tracker.members.get(member_id)
    link = body.get("link") or member.target(spec_type).link
    if not link:
        raise ValidationError(f"{member.name} has no {spec_type.value} BiS link")

    state = None
    if "is_acquired" in body:
        state = tracker.acquisitions.set_acquired(
            member_id, spec_type, link, slot, bool(body["is_acquired"])
        )
    if "upgrade_material_acquired" in body:
        state = tracker.acquisitions.set_upgrade_material_acquired(
            member_id, spec_type, link, slot, bool(body["upgrade_material_acquired"])
        )

    return success_response(
        data={
            "member_id": member_id,
            "spec_type": spec_type.value,
            "link": link,
            "slot": slot.value,
            **state.model_dump(),
        }
    )
