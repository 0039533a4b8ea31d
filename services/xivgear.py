"""
xivgear.app import client.

Turns a shared xivgear link into BiS ``GearItem`` entries. Two link shapes
are understood:

    https://xivgear.app/?page=sl|<set uuid>       -> /shortlink/<uuid>
    https://xivgear.app/?page=bis|<job>|<type>    -> /fulldata/bis/<job>/<type>
"""

import logging
import re
from typing import Any, Dict, List, Optional

import requests

from models.enums import GearSlot, ItemType
from models.members import GearItem
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

_SHORTLINK_PATTERN = re.compile(r"[?&]page=sl\|([a-f0-9\-]+)", re.IGNORECASE)
_BIS_PATTERN = re.compile(r"[?&]page=bis\|([^|&]+)\|([^&]+)", re.IGNORECASE)

XIVGEAR_SLOTS = {
    "weapon": GearSlot.WEAPON,
    "head": GearSlot.HEAD,
    "body": GearSlot.BODY,
    "hand": GearSlot.HAND,
    "legs": GearSlot.LEGS,
    "feet": GearSlot.FEET,
    "ears": GearSlot.EARS,
    "neck": GearSlot.NECK,
    "wrist": GearSlot.WRIST,
    "ringright": GearSlot.RIGHT_RING,
    "ringleft": GearSlot.LEFT_RING,
}

_TOME_HINTS = ("augmented", "aug.", "aug ", "tome", "tomestone")


def api_path_for(link: str) -> str:
    """
    Map a xivgear link to its API path.

    Raises:
        ValidationError: The link is neither a shortlink nor a BiS link
    """
    match = _BIS_PATTERN.search(link or "")
    if match:
        return f"/fulldata/bis/{match.group(1).lower()}/{match.group(2).lower()}"

    match = _SHORTLINK_PATTERN.search(link or "")
    if match:
        return f"/shortlink/{match.group(1)}"

    raise ValidationError(
        "Invalid xivgear link format. Expected ?page=sl|{setId} or ?page=bis|{job}|{type}",
        {"link": link},
    )


def item_type_for(item: Dict[str, Any]) -> ItemType:
    """Augmented tome when the source, category or name mentions tomes, else Raid."""
    for field in ("source", "itemCategory", "name"):
        value = str(item.get(field) or "").lower()
        if any(hint in value for hint in _TOME_HINTS):
            return ItemType.AUGMENTED_TOME
    return ItemType.RAID


def parse_gear_set(payload: Dict[str, Any]) -> List[GearItem]:
    """
    Pick the gear set out of an API response.

    Shortlinks hold a ``sets`` array whose first non-separator entry is used;
    BiS endpoints hold ``items`` at the root.
    """
    items = None
    sets = payload.get("sets")
    if isinstance(sets, list):
        for gear_set in sets:
            if isinstance(gear_set, dict) and not gear_set.get("isSeparator"):
                if isinstance(gear_set.get("items"), dict):
                    items = gear_set["items"]
                    break
    elif isinstance(payload.get("items"), dict):
        items = payload["items"]

    if items is None:
        raise ValidationError("Invalid xivgear response: no gear set found")

    gear = []
    for slot_name, item in items.items():
        slot = XIVGEAR_SLOTS.get(slot_name.lower())
        if slot is None or not isinstance(item, dict) or not item.get("id"):
            continue
        gear.append(
            GearItem(
                slot=slot,
                item_type=item_type_for(item),
                item_name=item.get("name"),
            )
        )
    return gear


class XivGearClient:
    def __init__(self, api_url: str = "https://api.xivgear.app", timeout: float = 10):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def fetch_gear(self, link: str, session: Optional[requests.Session] = None) -> List[GearItem]:
        """
        Fetch and parse the gear set behind a xivgear link.

        Args:
            link: A shortlink or BiS link copied from xivgear.app
            session: Optional requests session

        Returns:
            The set's items, one per slot

        Raises:
            ValidationError: Bad link or unusable response
            requests.RequestException: Network failure or non-2xx status
        """
        url = f"{self.api_url}{api_path_for(link)}"
        http = session or requests
        logger.info(f"Fetching xivgear set from {url}")

        response = http.get(url, timeout=self.timeout)
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError:
            raise ValidationError("xivgear returned a non-JSON response", {"url": url})
        if not isinstance(payload, dict):
            raise ValidationError("xivgear returned an unexpected payload", {"url": url})

        gear = parse_gear_set(payload)
        logger.info(f"Imported {len(gear)} items from xivgear", extra={"link": link})
        return gear
