"""
Loot distribution handlers for the raid loot tracker API.

Anyone signed in can see the loot board and who needs what. Managers and
Administrators assign, undo and reassign drops.
"""

import logging
from typing import Any, Dict

from models.enums import SpecType, parse_slot
from models.loot import (AssignLootRequest, DropDescriptor, ReassignRequest,
                         assignment_to_dict)
from services import permissions
from services.container import get_tracker
from utils.decorators import (extract_path_params, lambda_handler,
                              require_auth, require_permission,
                              validate_json_body)
from utils.errors import ValidationError
from utils.responses import HTTPStatus, success_response

logger = logging.getLogger(__name__)


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes")


def drop_from_request(data: Dict[str, Any]) -> DropDescriptor:
    """
    Build a drop from request fields.

    ``slot`` names a gear slot; otherwise ``is_upgrade_material`` with
    ``is_armor_material`` describes a material.
    """
    try:
        if _flag(data.get("is_upgrade_material", False)):
            return DropDescriptor.material(_flag(data.get("is_armor_material", False)))
        if not data.get("slot"):
            raise ValidationError("A drop needs a slot or is_upgrade_material")
        return DropDescriptor.gear(parse_slot(data["slot"]))
    except ValueError as e:
        raise ValidationError(f"Invalid drop: {e}")


def _int_param(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer, got {value!r}")


@lambda_handler()
@extract_path_params("floor_number")
@require_auth
def loot_board(event, context):
    """
    Every drop of a floor with its candidates and current assignment.

    GET /floors/{floor_number}/loot?week_number=N
    """
    tracker = get_tracker()
    floor_number = _int_param(event["path_params"]["floor_number"], "Floor number")
    query = event.get("queryStringParameters") or {}
    week_number = (
        _int_param(query["week_number"], "Week number") if query.get("week_number") else None
    )

    names = {m.member_id: m.name for m in tracker.members.list()}
    board = []
    for status in tracker.loot.loot_board(floor_number, week_number):
        assignment = status.assignment
        board.append(
            {
                "drop": status.drop.model_dump(mode="json"),
                "label": status.drop.label(),
                "bucket": status.eligibility.bucket.value,
                "candidates": [c.model_dump(mode="json") for c in status.eligibility.candidates],
                "assignment": (
                    assignment_to_dict(assignment, names.get(assignment.member_id, "Unknown"))
                    if assignment
                    else None
                ),
            }
        )
    return success_response(data={"floor_number": floor_number, "drops": board})


@lambda_handler()
@extract_path_params("floor_number")
@require_auth
def eligibility(event, context):
    """
    Who may receive one drop.

    GET /floors/{floor_number}/eligibility?slot=Head
    GET /floors/{floor_number}/eligibility?is_upgrade_material=true&is_armor_material=true
    """
    query = event.get("queryStringParameters") or {}
    floor_number = _int_param(event["path_params"]["floor_number"], "Floor number")
    spec_hint = None
    if query.get("spec_type"):
        try:
            spec_hint = SpecType(query["spec_type"])
        except ValueError:
            raise ValidationError(f"Unknown spec type: {query['spec_type']}")

    result = get_tracker().loot.resolve(floor_number, drop_from_request(query), spec_hint)
    return success_response(
        data={
            "drop": result.drop.model_dump(mode="json"),
            "bucket": result.bucket.value,
            "candidates": [c.model_dump(mode="json") for c in result.candidates],
        }
    )


@lambda_handler()
@require_auth
@require_permission(permissions.can_manage_loot, "assign loot")
@validate_json_body(required_fields=["member_id", "floor_number"])
def assign_loot(event, context):
    """
    Give a drop to a member.

    POST /loot/assignments

    Returns 409 with the conflicting assignment id when the drop was already
    assigned on that floor this week.
    """
    body = event["json_body"]
    drop = drop_from_request(body)
    # Normalized drop fields replace whatever the body spelled
    request = AssignLootRequest(**{**body, **drop.model_dump()})

    tracker = get_tracker()
    assignment = tracker.loot.assign_loot(
        request.member_id,
        request.floor_number,
        drop,
        request.spec_type,
        request.week_number,
    )
    member = tracker.members.get(assignment.member_id)
    return success_response(
        data={"assignment": assignment_to_dict(assignment, member.name)},
        message=f"{drop.label()} assigned to {member.name}",
        status_code=HTTPStatus.CREATED,
    )


@lambda_handler()
@extract_path_params("assignment_id")
@require_auth
@require_permission(permissions.can_manage_loot, "undo loot assignments")
def undo_assignment(event, context):
    """
    Undo an assignment and revert the BiS progress it recorded.

    DELETE /loot/assignments/{assignment_id}
    """
    removed = get_tracker().loot.undo(event["path_params"]["assignment_id"])
    return success_response(
        data={"assignment": assignment_to_dict(removed)},
        message="Assignment undone",
    )


@lambda_handler()
@extract_path_params("assignment_id")
@require_auth
@require_permission(permissions.can_manage_loot, "reassign loot")
@validate_json_body(required_fields=["member_id", "spec_type"])
def reassign(event, context):
    """
    Correct the recipient or bucket of an assignment.

    PUT /loot/assignments/{assignment_id}
    """
    request = ReassignRequest(**event["json_body"])
    tracker = get_tracker()
    assignment = tracker.loot.reassign(
        event["path_params"]["assignment_id"], request.member_id, request.spec_type
    )
    member = tracker.members.get(assignment.member_id)
    return success_response(
        data={"assignment": assignment_to_dict(assignment, member.name)},
        message=f"Assignment moved to {member.name}",
    )


@lambda_handler()
@require_auth
def extra_counts(event, context):
    """
    How often each member received a drop as Extra.

    GET /loot/extra-counts?slot=Weapon
    """
    query = event.get("queryStringParameters") or {}
    counts = get_tracker().loot.extra_counts(drop_from_request(query))
    return success_response(data={"counts": counts})
