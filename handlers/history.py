"""
Loot history handlers for the raid loot tracker API.
"""

from services.container import get_tracker
from utils.decorators import extract_path_params, lambda_handler, require_auth
from utils.errors import ValidationError
from utils.responses import success_response


@lambda_handler()
@require_auth
def list_history(event, context):
    """
    Every week's assignments, newest week first.

    GET /history
    """
    weeks = get_tracker().loot.history()
    return success_response(data={"weeks": weeks, "count": len(weeks)})


@lambda_handler()
@extract_path_params("week_number")
@require_auth
def get_week_history(event, context):
    """
    One week's assignments ordered by floor, then time.

    GET /history/{week_number}
    """
    value = event["path_params"]["week_number"]
    try:
        week_number = int(value)
    except ValueError:
        raise ValidationError(f"Week number must be an integer, got {value!r}")

    weeks = get_tracker().loot.history(week_number)
    return success_response(data=weeks[0])
