"""
Raid week handlers for the raid loot tracker API.
"""

import logging

from services import permissions
from services.container import get_tracker
from utils.decorators import (extract_path_params, lambda_handler,
                              require_auth, require_permission)
from utils.errors import ValidationError
from utils.responses import HTTPStatus, success_response

logger = logging.getLogger(__name__)


def week_number_param(event) -> int:
    value = event["path_params"]["week_number"]
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Week number must be an integer, got {value!r}")


@lambda_handler()
@require_auth
def list_weeks(event, context):
    """
    List all weeks, newest first.

    GET /weeks
    """
    weeks = get_tracker().weeks.list()
    return success_response(
        data={"weeks": [w.model_dump(mode="json") for w in weeks], "count": len(weeks)}
    )


@lambda_handler()
@require_auth
def get_current_week(event, context):
    """
    Get the current week, or null when none is set.

    GET /weeks/current
    """
    week = get_tracker().weeks.get_current()
    return success_response(data={"week": week.model_dump(mode="json") if week else None})


@lambda_handler()
@require_auth
@require_permission(permissions.can_create_week, "start a new week")
def start_next_week(event, context):
    """
    Start the week after the latest one and make it current.

    POST /weeks/next
    """
    week = get_tracker().weeks.start_next()
    return success_response(
        data={"week": week.model_dump(mode="json")},
        message=f"Week {week.week_number} started",
        status_code=HTTPStatus.CREATED,
    )


@lambda_handler()
@extract_path_params("week_number")
@require_auth
@require_permission(permissions.can_create_week, "create weeks")
def create_week(event, context):
    """
    Create a specific week number without making it current.

    POST /weeks/{week_number}
    """
    week = get_tracker().weeks.create(week_number_param(event))
    return success_response(
        data={"week": week.model_dump(mode="json")},
        message=f"Week {week.week_number} created",
        status_code=HTTPStatus.CREATED,
    )


@lambda_handler()
@extract_path_params("week_number")
@require_auth
@require_permission(permissions.can_create_week, "change the current week")
def set_current_week(event, context):
    """
    Make an existing week the current one.

    PUT /weeks/{week_number}/current
    """
    week = get_tracker().weeks.set_current(week_number_param(event))
    return success_response(
        data={"week": week.model_dump(mode="json")},
        message=f"Week {week.week_number} is now current",
    )


@lambda_handler()
@extract_path_params("week_number")
@require_auth
@require_permission(permissions.can_delete_week, "delete weeks")
def delete_week(event, context):
    """
    Delete a week, its assignments, and the BiS progress they recorded.

    DELETE /weeks/{week_number}
    """
    week_number = week_number_param(event)
    removed = get_tracker().loot.delete_week(week_number)
    return success_response(
        data={"week_number": week_number, "removed_assignments": len(removed)},
        message=f"Week {week_number} deleted",
    )
