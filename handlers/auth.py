"""
Authentication handlers for the raid loot tracker API.

Members log in with their name and a four digit PIN and receive a session
token used as a bearer token on every other endpoint.
"""

import logging

from models.members import member_to_dict
from services.container import get_tracker
from utils.decorators import lambda_handler, require_auth, validate_json_body
from utils.responses import success_response

logger = logging.getLogger(__name__)


@lambda_handler()
@validate_json_body(required_fields=["name", "pin"])
def login(event, context):
    """
    Exchange a member name and PIN for a session token.

    POST /auth/login

    Args:
        event: Lambda event object with ``name`` and ``pin`` in the body
        context: Lambda context object

    Returns:
        HTTP response with the token and the member profile
    """
    body = event["json_body"]
    token, member = get_tracker().auth.login(str(body["name"]), str(body["pin"]))

    return success_response(
        data={"token": token, "member": member_to_dict(member)},
        message="Login successful",
    )


@lambda_handler()
@require_auth
def me(event, context):
    """
    Return the authenticated member.

    GET /auth/me
    """
    return success_response(data={"member": member_to_dict(event["member"])})


@lambda_handler()
@require_auth
@validate_json_body(required_fields=["current_pin", "new_pin"])
def change_pin(event, context):
    """
    Change the authenticated member's PIN.

    PUT /auth/pin

    The current PIN must be supplied; the new PIN must be exactly four digits.
    """
    body = event["json_body"]
    member = get_tracker().auth.change_pin(
        event["auth"]["member_id"], str(body["current_pin"]), str(body["new_pin"])
    )
    return success_response(
        data={"member": member_to_dict(member)}, message="PIN updated successfully"
    )
