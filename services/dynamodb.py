"""
DynamoDB service for the raid loot tracker.

This module implements the loot store on a single DynamoDB table with
shared resource initialization for optimal Lambda performance.

Key layout:

    PK                      SK                              item
    ROSTER                  MEMBER#{member_id}              member
    MEMBER#{member_id}      ACQ#{spec}#{slot}#{link}        acquisition row
    WEEKS                   WEEK#{week_number:06d}          week
    WEEKS                   CURRENT                         current-week pointer
    ASSIGNMENT#{id}         ASSIGNMENT#INFO                 assignment (GSI1 by week)
    WEEK#{week_number}      DROP#F{floor}#{drop key}        uniqueness guard
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import boto3
import botocore
from boto3.dynamodb.types import TypeSerializer

from models.acquisition import (AcquisitionKey, AcquisitionState,
                                state_from_dynamodb_item)
from models.dynamodb import (CurrentWeekItem, DropGuardItem, DynamoDBItem,
                             without_none)
from models.enums import GearSlot, SpecType
from models.loot import DropDescriptor, LootAssignment
from models.members import MemberBase
from models.weeks import Week, week_sort_key
from utils.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

GSI1_NAME = "GSI1"

# Created on first use and reused across warm starts
_dynamodb_resource = None
_serializer = TypeSerializer()


def get_dynamodb_resource():
    """Get or create the shared DynamoDB resource."""
    global _dynamodb_resource
    if _dynamodb_resource is None:
        _dynamodb_resource = boto3.resource("dynamodb")
    return _dynamodb_resource


def _error_code(err: botocore.exceptions.ClientError) -> str:
    return err.response.get("Error", {}).get("Code", "")


def _cancellation_codes(err: botocore.exceptions.ClientError) -> List[str]:
    """Per-operation reason codes of a cancelled transaction, in request order."""
    return [reason.get("Code", "None") for reason in err.response.get("CancellationReasons", [])]


class LootTrackerTable:
    """
    Encapsulates operations on the Amazon DynamoDB loot tracker table.

    Implements ``services.repositories.LootStore``. Drop uniqueness is enforced
    by writing a guard item in the same transaction as the assignment.
    """

    def __init__(self, table_name: str = None, table=None):
        """
        Initialize the DynamoDB table connection using shared resources.

        :param table_name: Name of the DynamoDB table.
        :param table: An already constructed Table resource (used by tests).
        """
        if table is None:
            if table_name is None:
                table_name = os.environ.get("TABLE_NAME", "RaidLootTable")
            table = get_dynamodb_resource().Table(table_name)
        self.table = table

    @property
    def client(self):
        return self.table.meta.client

    def _log_client_error(self, action: str, err: botocore.exceptions.ClientError) -> None:
        logger.error(
            "Couldn't %s in table %s. Error: %s: %s",
            action,
            self.table.name,
            _error_code(err),
            err.response.get("Error", {}).get("Message", ""),
        )

    def _query_all(self, **kwargs) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _scan_all(self, **kwargs) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        while True:
            response = self.table.scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _serialize(self, item: DynamoDBItem) -> Dict[str, Any]:
        return {
            k: _serializer.serialize(v)
            for k, v in without_none(item.model_dump()).items()
        }

    def _transact(self, action: str, items: List[Dict[str, Any]]) -> None:
        for entry in items:
            for operation in entry.values():
                operation.setdefault("TableName", self.table.name)
        try:
            self.client.transact_write_items(TransactItems=items)
        except botocore.exceptions.ClientError as err:
            if _error_code(err) != "TransactionCanceledException":
                self._log_client_error(action, err)
            raise

    # Members

    def list_members(self) -> List[MemberBase]:
        """
        Lists every roster member.

        :return: All members, in storage order.
        """
        try:
            items = self._query_all(
                KeyConditionExpression="PK = :pk AND begins_with(SK, :sk_prefix)",
                ExpressionAttributeValues={":pk": "ROSTER", ":sk_prefix": "MEMBER#"},
            )
            return [MemberBase.from_dynamodb_item(item) for item in items]
        except botocore.exceptions.ClientError as err:
            self._log_client_error("list members", err)
            raise

    def get_member(self, member_id: str) -> Optional[MemberBase]:
        """
        Gets a member from the table.

        :param member_id: The id of the member to retrieve.
        :return: The member if found, None otherwise.
        """
        try:
            response = self.table.get_item(
                Key={"PK": "ROSTER", "SK": f"MEMBER#{member_id}"}
            )
            item = response.get("Item")
            if not item:
                return None
            return MemberBase.from_dynamodb_item(item)
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"get member {member_id}", err)
            raise

    def find_member_by_name(self, name: str) -> Optional[MemberBase]:
        """
        Finds a member by name, case-insensitively.

        :param name: The display name to search for.
        :return: The member if found, None otherwise.
        """
        try:
            items = self._query_all(
                KeyConditionExpression="PK = :pk AND begins_with(SK, :sk_prefix)",
                FilterExpression="name_lower = :name",
                ExpressionAttributeValues={
                    ":pk": "ROSTER",
                    ":sk_prefix": "MEMBER#",
                    ":name": name.strip().lower(),
                },
            )
            if not items:
                return None
            return MemberBase.from_dynamodb_item(items[0])
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"find member {name}", err)
            raise

    def put_member(self, member: MemberBase) -> bool:
        """
        Adds or replaces a member.

        :param member: The member to store.
        :return: True if successful, raises exception otherwise.
        """
        try:
            self.table.put_item(Item=without_none(member.to_dynamodb_item().model_dump()))
            return True
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"put member {member.member_id}", err)
            raise

    def delete_member(self, member_id: str) -> bool:
        """
        Deletes a member. Acquisition rows and assignments are left in place.

        :param member_id: The id of the member to delete.
        :return: True if a member was deleted, False if none existed.
        """
        try:
            response = self.table.delete_item(
                Key={"PK": "ROSTER", "SK": f"MEMBER#{member_id}"},
                ReturnValues="ALL_OLD",
            )
            return bool(response.get("Attributes"))
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"delete member {member_id}", err)
            raise

    # Acquisition table

    def get_acquisition(self, key: AcquisitionKey) -> Optional[AcquisitionState]:
        try:
            response = self.table.get_item(Key=key.to_dynamodb_key())
            item = response.get("Item")
            return state_from_dynamodb_item(item) if item else None
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"get acquisition {key}", err)
            raise

    def update_acquisition(
        self, key: AcquisitionKey, **changes: bool
    ) -> Tuple[AcquisitionState, AcquisitionState]:
        """
        Sets flags on one acquisition row in a single UpdateItem call.

        :param key: Composite key of the row.
        :param changes: Flag names and their new values.
        :return: The (before, after) states of the row.
        """
        item = key.to_dynamodb_item(AcquisitionState()).model_dump()
        assignments = ["member_id = :member_id", "spec_type = :spec_type",
                       "slot = :slot", "link = :link", "updated_at = :updated_at"]
        values: Dict[str, Any] = {
            ":member_id": item["member_id"],
            ":spec_type": item["spec_type"],
            ":slot": item["slot"],
            ":link": item["link"],
            ":updated_at": datetime.now(timezone.utc).isoformat(),
        }
        for field, value in changes.items():
            assignments.append(f"{field} = :{field}")
            values[f":{field}"] = bool(value)

        try:
            response = self.table.update_item(
                Key=key.to_dynamodb_key(),
                UpdateExpression="SET " + ", ".join(assignments),
                ExpressionAttributeValues=values,
                ReturnValues="ALL_OLD",
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"update acquisition {key}", err)
            raise

        before = state_from_dynamodb_item(response.get("Attributes") or {})
        return before, before.model_copy(update=changes)

    def list_acquisitions(
        self, member_id: str, spec_type: SpecType, link: str
    ) -> Dict[GearSlot, AcquisitionState]:
        try:
            items = self._query_all(
                KeyConditionExpression="PK = :pk AND begins_with(SK, :sk_prefix)",
                FilterExpression="link = :link",
                ExpressionAttributeValues={
                    ":pk": f"MEMBER#{member_id}",
                    ":sk_prefix": f"ACQ#{spec_type.value}#",
                    ":link": link,
                },
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"list acquisitions for member {member_id}", err)
            raise
        return {GearSlot(item["slot"]): state_from_dynamodb_item(item) for item in items}

    # Weeks

    def list_weeks(self) -> List[Week]:
        """
        Lists all weeks with the current flag resolved.

        Weeks and the pointer share a partition, so one query reads a
        consistent view of both.
        """
        try:
            items = self._query_all(
                KeyConditionExpression="PK = :pk",
                ExpressionAttributeValues={":pk": "WEEKS"},
                ConsistentRead=True,
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error("list weeks", err)
            raise

        current = next(
            (int(item["week_number"]) for item in items if item["SK"] == "CURRENT"),
            None,
        )
        return [
            Week.from_dynamodb_item(item, current)
            for item in items
            if item["SK"].startswith("WEEK#")
        ]

    def get_week(self, week_number: int) -> Optional[Week]:
        return next((w for w in self.list_weeks() if w.week_number == week_number), None)

    def create_week(self, week: Week) -> Week:
        """
        Adds a week.

        :param week: The week to add.
        :return: The stored week.
        :raises ConflictError: If the week number already exists.
        """
        try:
            self.table.put_item(
                Item=week.to_dynamodb_item().model_dump(),
                ConditionExpression="attribute_not_exists(PK)",
            )
            return week.model_copy(update={"is_current": False})
        except botocore.exceptions.ClientError as err:
            if _error_code(err) == "ConditionalCheckFailedException":
                raise ConflictError(f"Week {week.week_number} already exists")
            self._log_client_error(f"create week {week.week_number}", err)
            raise

    def set_current_week(self, week_number: int) -> None:
        """
        Points the current-week pointer at an existing week in one transaction.

        :raises NotFoundError: If the week does not exist.
        """
        pointer = CurrentWeekItem(
            week_number=week_number,
            updated_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            self._transact(
                f"set current week {week_number}",
                [
                    {
                        "ConditionCheck": {
                            "Key": {
                                "PK": {"S": "WEEKS"},
                                "SK": {"S": week_sort_key(week_number)},
                            },
                            "ConditionExpression": "attribute_exists(PK)",
                        }
                    },
                    {"Put": {"Item": self._serialize(pointer)}},
                ],
            )
        except botocore.exceptions.ClientError as err:
            if _error_code(err) == "TransactionCanceledException":
                raise NotFoundError("Week", week_number)
            raise

    def get_current_week_number(self) -> Optional[int]:
        try:
            response = self.table.get_item(
                Key={"PK": "WEEKS", "SK": "CURRENT"}, ConsistentRead=True
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error("get current week", err)
            raise
        item = response.get("Item")
        return int(item["week_number"]) if item else None

    def delete_week(self, week_number: int) -> None:
        """
        Deletes a week and clears the pointer if it pointed at it.

        :raises NotFoundError: If the week does not exist.
        """
        try:
            self.table.delete_item(
                Key={"PK": "WEEKS", "SK": week_sort_key(week_number)},
                ConditionExpression="attribute_exists(PK)",
            )
        except botocore.exceptions.ClientError as err:
            if _error_code(err) == "ConditionalCheckFailedException":
                raise NotFoundError("Week", week_number)
            self._log_client_error(f"delete week {week_number}", err)
            raise

        try:
            self.table.delete_item(
                Key={"PK": "WEEKS", "SK": "CURRENT"},
                ConditionExpression="week_number = :week",
                ExpressionAttributeValues={":week": week_number},
            )
        except botocore.exceptions.ClientError as err:
            # The pointer referenced another week
            if _error_code(err) != "ConditionalCheckFailedException":
                self._log_client_error(f"clear current week {week_number}", err)
                raise

    # Assignments

    def list_assignments(self) -> List[LootAssignment]:
        try:
            items = self._scan_all(
                FilterExpression="begins_with(PK, :pk_prefix) AND SK = :sk",
                ExpressionAttributeValues={
                    ":pk_prefix": "ASSIGNMENT#",
                    ":sk": "ASSIGNMENT#INFO",
                },
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error("list assignments", err)
            raise
        return [LootAssignment.from_dynamodb_item(item) for item in items]

    def list_assignments_by_week(self, week_number: int) -> List[LootAssignment]:
        try:
            items = self._query_all(
                IndexName=GSI1_NAME,
                KeyConditionExpression="GSI1PK = :pk",
                ExpressionAttributeValues={":pk": f"WEEK#{week_number}"},
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"list assignments for week {week_number}", err)
            raise
        return [LootAssignment.from_dynamodb_item(item) for item in items]

    def get_assignment(
        self, assignment_id: str, consistent: bool = False
    ) -> Optional[LootAssignment]:
        try:
            response = self.table.get_item(
                Key={"PK": f"ASSIGNMENT#{assignment_id}", "SK": "ASSIGNMENT#INFO"},
                ConsistentRead=consistent,
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"get assignment {assignment_id}", err)
            raise
        item = response.get("Item")
        return LootAssignment.from_dynamodb_item(item) if item else None

    def find_assignment(
        self, floor_number: int, week_number: int, drop: DropDescriptor
    ) -> Optional[LootAssignment]:
        """
        Looks up the assignment holding a drop through its guard item.

        :return: The assignment if the drop is taken, None otherwise.
        """
        try:
            response = self.table.get_item(
                Key={
                    "PK": f"WEEK#{week_number}",
                    "SK": f"DROP#F{floor_number}#{drop.key()}",
                },
                ConsistentRead=True,
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error(
                f"find assignment for floor {floor_number} week {week_number}", err
            )
            raise
        guard = response.get("Item")
        if not guard:
            return None
        return self.get_assignment(guard["assignment_id"], consistent=True)

    def insert_assignment(self, assignment: LootAssignment) -> LootAssignment:
        """
        Writes the assignment and its drop guard in one transaction, conditioned
        on the week still existing.

        :raises NotFoundError: If the week was deleted.
        :raises ConflictError: If the guard already exists.
        """
        try:
            self._transact(
                f"insert assignment {assignment.assignment_id}",
                [
                    {
                        "ConditionCheck": {
                            "Key": {
                                "PK": {"S": "WEEKS"},
                                "SK": {"S": week_sort_key(assignment.week_number)},
                            },
                            "ConditionExpression": "attribute_exists(PK)",
                        }
                    },
                    {
                        "Put": {
                            "Item": self._serialize(assignment.guard_item()),
                            "ConditionExpression": "attribute_not_exists(PK)",
                        }
                    },
                    {"Put": {"Item": self._serialize(assignment.to_dynamodb_item())}},
                ],
            )
        except botocore.exceptions.ClientError as err:
            if _error_code(err) == "TransactionCanceledException":
                if _cancellation_codes(err)[:1] == ["ConditionalCheckFailed"]:
                    raise NotFoundError("Week", assignment.week_number)
                self._raise_conflict(assignment)
            raise
        return assignment

    def replace_assignment(
        self, previous: LootAssignment, assignment: LootAssignment
    ) -> LootAssignment:
        """
        Overwrites an assignment, moving its guard when the drop key changed.

        :raises NotFoundError: If the assignment or its new week is gone.
        :raises ConflictError: If the new drop is held by another assignment.
        """
        old_guard = previous.guard_item()
        new_guard = assignment.guard_item()
        operations: List[Dict[str, Any]] = []
        if (old_guard.PK, old_guard.SK) != (new_guard.PK, new_guard.SK):
            if assignment.week_number != previous.week_number:
                operations.append(
                    {
                        "ConditionCheck": {
                            "Key": {
                                "PK": {"S": "WEEKS"},
                                "SK": {"S": week_sort_key(assignment.week_number)},
                            },
                            "ConditionExpression": "attribute_exists(PK)",
                        }
                    }
                )
            operations.append(self._guard_delete(old_guard))
            operations.append(
                {
                    "Put": {
                        "Item": self._serialize(new_guard),
                        "ConditionExpression": "attribute_not_exists(PK)",
                    }
                }
            )
        operations.append(
            {
                "Put": {
                    "Item": self._serialize(assignment.to_dynamodb_item()),
                    "ConditionExpression": "attribute_exists(PK)",
                }
            }
        )
        try:
            self._transact(f"replace assignment {assignment.assignment_id}", operations)
        except botocore.exceptions.ClientError as err:
            if _error_code(err) == "TransactionCanceledException":
                if self.get_assignment(previous.assignment_id) is None:
                    raise NotFoundError("Assignment", previous.assignment_id)
                if self.get_week(assignment.week_number) is None:
                    raise NotFoundError("Week", assignment.week_number)
                self._raise_conflict(assignment)
            raise
        return assignment

    def delete_assignment(self, assignment: LootAssignment) -> None:
        """
        Deletes an assignment and the guard it owns.

        The guard is only removed while it still names this assignment, so a
        stale delete never frees a drop that was assigned again since.

        :raises NotFoundError: If the assignment is already gone.
        """
        guard = assignment.guard_item()
        try:
            self._transact(
                f"delete assignment {assignment.assignment_id}",
                [
                    {
                        "Delete": {
                            "Key": {
                                "PK": {"S": f"ASSIGNMENT#{assignment.assignment_id}"},
                                "SK": {"S": "ASSIGNMENT#INFO"},
                            },
                            "ConditionExpression": "attribute_exists(PK)",
                        }
                    },
                    self._guard_delete(guard),
                ],
            )
        except botocore.exceptions.ClientError as err:
            if _error_code(err) == "TransactionCanceledException":
                raise NotFoundError("Assignment", assignment.assignment_id)
            raise

    def delete_assignments_by_week(self, week_number: int) -> List[LootAssignment]:
        """
        Deletes every assignment of a week.

        Records are found through the week's guard items with a strongly
        consistent query, so assignments written just before the week was
        deleted are included.

        :return: The removed assignments.
        """
        try:
            guards = self._query_all(
                KeyConditionExpression="PK = :pk AND begins_with(SK, :sk_prefix)",
                ExpressionAttributeValues={":pk": f"WEEK#{week_number}", ":sk_prefix": "DROP#"},
                ConsistentRead=True,
            )
            removed = []
            with self.table.batch_writer() as batch:
                for guard in guards:
                    assignment = self.get_assignment(guard["assignment_id"], consistent=True)
                    if assignment is not None:
                        removed.append(assignment)
                    batch.delete_item(
                        Key={
                            "PK": f"ASSIGNMENT#{guard['assignment_id']}",
                            "SK": "ASSIGNMENT#INFO",
                        }
                    )
                    batch.delete_item(Key={"PK": guard["PK"], "SK": guard["SK"]})
        except botocore.exceptions.ClientError as err:
            self._log_client_error(f"delete assignments for week {week_number}", err)
            raise
        return removed

    def _guard_delete(self, guard: DropGuardItem) -> Dict[str, Any]:
        return {
            "Delete": {
                "Key": {"PK": {"S": guard.PK}, "SK": {"S": guard.SK}},
                "ConditionExpression": "assignment_id = :id",
                "ExpressionAttributeValues": {":id": {"S": guard.assignment_id}},
            }
        }

    def _raise_conflict(self, assignment: LootAssignment) -> None:
        holder = self.find_assignment(
            assignment.floor_number, assignment.week_number, assignment.drop
        )
        raise ConflictError(
            f"The {assignment.drop.label()} on floor {assignment.floor_number} "
            f"has already been assigned in week {assignment.week_number}",
            conflicting_id=holder.assignment_id if holder else None,
        )
