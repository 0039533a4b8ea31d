"""
Models package for data structures and database entities.

This package contains Pydantic models for the roster, acquisition state,
weeks, loot assignments and change events, plus their DynamoDB item
representations.
"""

from .acquisition import AcquisitionKey, AcquisitionState, BisItemView
from .dynamodb import DynamoDBItem
from .enums import (EventKind, GearSlot, ItemType, MemberRole, PermissionRole,
                    SpecType)
from .events import ChangeEvent
from .loot import DropDescriptor, DropEligibility, LootAssignment, MemberNeed
from .members import BisTarget, GearItem, MemberBase
from .weeks import Week

__all__ = [
    "AcquisitionKey",
    "AcquisitionState",
    "BisItemView",
    "BisTarget",
    "ChangeEvent",
    "DropDescriptor",
    "DropEligibility",
    "DynamoDBItem",
    "EventKind",
    "GearItem",
    "GearSlot",
    "ItemType",
    "LootAssignment",
    "MemberBase",
    "MemberNeed",
    "MemberRole",
    "PermissionRole",
    "SpecType",
    "Week",
]
