"""Utility functions for working with contact labels"""

import re
from collections.abc import Iterable

from .addresses import load_json_list

SYSTEM_LABELS = {"mycontacts", "starred"}
HEX_ID_PATTERN = re.compile(r"^[0-9a-f]{12,}$", re.IGNORECASE)

# Symbols users put in front of labels to pin them to the top
PIN_SYMBOLS = {"*", "★", "☆"}


def starts_with_emoji(text: str) -> bool:
    if not text:
        return False

    first = text[0]
    if first in PIN_SYMBOLS:
        return True

    code = ord(first)
    return (
        0x1F300 <= code <= 0x1FAFF  # pictographs, emoticons, transport, supplemental
        or 0x1F1E6 <= code <= 0x1F1FF  # regional indicator flags
        or 0x2600 <= code <= 0x27BF  # misc symbols and dingbats
    )


def sort_labels_smartly(labels: Iterable[str]) -> list[str]:
    """
    Emoji-prefixed labels first, then plain labels; each group
    sorted case-insensitively.

    ["Zebra", "*Abundant", "Apple"] -> ["*Abundant", "Apple", "Zebra"]
    """
    emoji_labels = []
    text_labels = []
    for label in labels:
        (emoji_labels if starts_with_emoji(label) else text_labels).append(label)

    emoji_labels.sort(key=str.casefold)
    text_labels.sort(key=str.casefold)
    return emoji_labels + text_labels


def clean_label(label: str) -> str:
    if label.startswith("contactGroups/"):
        return label.split("/")[-1]
    return label


def is_visible_label(label: str) -> bool:
    return (
        label.strip() != ""
        and label.lower() not in SYSTEM_LABELS
        and not HEX_ID_PATTERN.match(label)
    )


def extract_and_sort_labels(contacts: Iterable) -> list[str]:
    """Unique user-facing labels across contacts, smart-sorted"""
    found = set()
    for contact in contacts:
        raw = contact.get("labels") if isinstance(contact, dict) else getattr(contact, "labels", None)
        for label in load_json_list(raw):
            if not isinstance(label, str):
                continue
            label = clean_label(label)
            if is_visible_label(label):
                found.add(label)
    return sort_labels_smartly(found)
