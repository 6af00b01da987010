"""AcroForm field bridge.

Extracts a PDF's interactive form fields into flat FormField records, writes
edited values back, and produces a flattened PDF for download.
"""
from .schema import FormField, FieldKind, format_field_label
from .acroform import AcroForm, FieldCapability, NativeField, classify_field
from .errors import BridgeError, LoadError, FillError, FillErrorKind, GenerateError, GenerateErrorKind
from .bridge import FormFieldBridge, OperationResult, filled_filename
from .logging_utils import FieldEvent, configure_file_logging

__all__ = [
    "FormField",
    "FieldKind",
    "format_field_label",
    "AcroForm",
    "FieldCapability",
    "NativeField",
    "classify_field",
    "BridgeError",
    "LoadError",
    "FillError",
    "FillErrorKind",
    "GenerateError",
    "GenerateErrorKind",
    "FormFieldBridge",
    "OperationResult",
    "filled_filename",
    "FieldEvent",
    "configure_file_logging",
]
