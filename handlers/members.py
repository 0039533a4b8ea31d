"""
Roster member handlers for the raid loot tracker API.

Anyone signed in can read the roster. Members edit their own profile;
Managers and Administrators edit and add anyone. Only Administrators remove
members or change permission roles.
"""

import logging

from models.enums import PermissionRole, SpecType
from models.members import MemberCreate, MemberUpdate, member_to_dict
from services import permissions
from services.container import get_tracker
from utils.decorators import (extract_path_params, lambda_handler,
                              require_auth, require_permission,
                              validate_json_body)
from utils.errors import ValidationError
from utils.responses import HTTPStatus, success_response

logger = logging.getLogger(__name__)


def member_detail(tracker, member):
    """Member profile with both BiS sets joined with acquisition state."""
    data = member_to_dict(member)
    for spec_type, key in ((SpecType.MAIN_SPEC, "main_spec"), (SpecType.OFF_SPEC, "off_spec")):
        data[key]["items"] = [
            view.model_dump(mode="json")
            for view in tracker.acquisitions.bis_view(member, spec_type)
        ]
    return data


@lambda_handler()
@require_auth
def list_members(event, context):
    """
    List every roster member.

    GET /members
    """
    tracker = get_tracker()
    members = [member_detail(tracker, m) for m in tracker.members.list()]
    return success_response(data={"members": members, "count": len(members)})


@lambda_handler()
@extract_path_params("member_id")
@require_auth
def get_member(event, context):
    """
    Get one member with both BiS sets and their acquisition state.

    GET /members/{member_id}
    """
    tracker = get_tracker()
    member = tracker.members.get(event["path_params"]["member_id"])
    return success_response(data={"member": member_detail(tracker, member)})


@lambda_handler()
@require_auth
@require_permission(permissions.can_create_member, "add members")
@validate_json_body(required_fields=["name"])
def create_member(event, context):
    """
    Add a member to the roster with the default PIN.

    POST /members
    """
    request = MemberCreate(**event["json_body"])
    member = get_tracker().members.create(request.name, request.role)

    return success_response(
        data={"member": member_to_dict(member)},
        message=f"Member '{member.name}' created successfully",
        status_code=HTTPStatus.CREATED,
    )


@lambda_handler()
@extract_path_params("member_id")
@require_auth
@require_permission(permissions.can_edit_member, "edit this member", with_path_params=True)
@validate_json_body()
def update_member(event, context):
    """
    Update a member's name, role or profile image.

    PUT /members/{member_id}
    """
    patch = MemberUpdate(**event["json_body"])
    member = get_tracker().members.update(event["path_params"]["member_id"], patch)
    return success_response(
        data={"member": member_to_dict(member)}, message="Member updated successfully"
    )


@lambda_handler()
@extract_path_params("member_id")
@require_auth
@require_permission(permissions.can_delete_member, "remove members")
def delete_member(event, context):
    """
    Remove a member. Their loot history is kept.

    DELETE /members/{member_id}
    """
    member_id = event["path_params"]["member_id"]
    get_tracker().members.delete(member_id)
    return success_response(message=f"Member '{member_id}' deleted successfully")


@lambda_handler()
@extract_path_params("member_id")
@require_auth
@require_permission(permissions.can_change_permissions, "change permission roles")
@validate_json_body(required_fields=["permission_role"])
def set_permission(event, context):
    """
    Change a member's permission role.

    PUT /members/{member_id}/permission
    """
    try:
        role = PermissionRole(event["json_body"]["permission_role"])
    except ValueError:
        raise ValidationError(
            "Unknown permission role",
            {"allowed": [r.value for r in PermissionRole]},
        )

    member = get_tracker().members.set_permission(event["path_params"]["member_id"], role)
    return success_response(
        data={"member": member_to_dict(member)},
        message=f"Permission role set to {role.value}",
    )
