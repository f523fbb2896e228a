"""Helpers for contacts that carry several addresses"""

import json
import logging
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

AddressList = list[dict[str, Any]]


def load_json_list(value: Union[str, list, None]) -> list:
    """Accept a JSON column value or a legacy JSON string; anything invalid is []"""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except (ValueError, TypeError):
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def parse_addresses(value: Union[str, list, None]) -> AddressList:
    return [a for a in load_json_list(value) if isinstance(a, dict)]


def get_primary_address(value: Union[str, list, None]) -> Optional[dict[str, Any]]:
    """
    Pick the address to route to.
    Priority: primary flag > home > work > first available
    """
    addresses = parse_addresses(value)
    if not addresses:
        return None

    for address in addresses:
        if address.get("isPrimary"):
            return address
    for wanted in ("home", "work"):
        for address in addresses:
            if (address.get("type") or "").lower() == wanted:
                return address
    return addresses[0]


def normalize_primary(addresses: AddressList) -> AddressList:
    """Keep at most one primary address (the first one flagged)"""
    seen_primary = False
    normalized = []
    for address in addresses:
        entry = dict(address)
        if entry.get("isPrimary") and not seen_primary:
            seen_primary = True
            entry["isPrimary"] = True
        else:
            entry["isPrimary"] = False
        normalized.append(entry)
    return normalized


def address_type_label(address_type: str) -> str:
    return address_type[:1].upper() + address_type[1:].lower()


def has_multiple_addresses(value: Union[str, list, None]) -> bool:
    return len(parse_addresses(value)) > 1
