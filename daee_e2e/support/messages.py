"""One place to decide whether a toast or alert reads as success, error or warning."""
from __future__ import annotations

import enum
import re

SUCCESS_PATTERN = re.compile(r"success|saved|created|updated|deleted|completed", re.IGNORECASE)
ERROR_PATTERN = re.compile(r"error|failed|invalid|unable|cannot|incorrect|denied", re.IGNORECASE)
WARNING_PATTERN = re.compile(r"\b(warning|caution|note)\b", re.IGNORECASE)


class MessageKind(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


def classify_message(text: str) -> MessageKind:
    # "Failed to save" must not count as a save.
    if ERROR_PATTERN.search(text):
        return MessageKind.ERROR
    if SUCCESS_PATTERN.search(text):
        return MessageKind.SUCCESS
    if WARNING_PATTERN.search(text):
        return MessageKind.WARNING
    return MessageKind.INFO


def is_error_message(text: str) -> bool:
    return classify_message(text) is MessageKind.ERROR


def is_success_message(text: str) -> bool:
    return classify_message(text) is MessageKind.SUCCESS
