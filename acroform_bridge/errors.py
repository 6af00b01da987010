from __future__ import annotations
from enum import Enum
from typing import Optional

from .config import ERROR_MESSAGES


class BridgeError(Exception):
    """Base class for failures reported by FormFieldBridge operations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class LoadError(BridgeError):
    """Input bytes are not a parseable (or supported) PDF document."""


class FillErrorKind(Enum):
    NO_FORM = "no_form"
    FILL_FAILED = "fill_failed"


class FillError(BridgeError):
    def __init__(self, kind: FillErrorKind, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or ERROR_MESSAGES[kind.value])


class GenerateErrorKind(Enum):
    NO_DOCUMENT = "no_document"
    SERIALIZE_FAILED = "serialize_failed"


class GenerateError(BridgeError):
    def __init__(self, kind: GenerateErrorKind, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or ERROR_MESSAGES[kind.value])
