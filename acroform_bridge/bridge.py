"""
FormFieldBridge: owns one loaded PDF and translates between its AcroForm and
flat FormField records.

Every public operation returns an OperationResult instead of raising, so the
caller decides whether to show the message and offer a retry.
"""

import io
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from pypdf import PdfReader, PdfWriter

from .acroform import AcroForm, resolve
from .config import (
    ERROR_MESSAGES,
    OUTPUT_FILENAME_PREFIX,
    PDF_HEADER_SEARCH_LIMIT,
    RADIO_OPTIONS_FROM_EXPORT_VALUES,
)
from .errors import (
    BridgeError,
    FillError,
    FillErrorKind,
    GenerateError,
    GenerateErrorKind,
    LoadError,
)
from .extract import extract_fields
from .fill import fill_fields
from .flatten import flatten_form
from .logging_utils import FieldEvent, logger
from .schema import FormField


@dataclass
class OperationResult:
    """Outcome of a bridge operation."""
    success: bool
    error: Optional[BridgeError] = None
    pdf_bytes: Optional[bytes] = None

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @classmethod
    def ok(cls, pdf_bytes: Optional[bytes] = None) -> "OperationResult":
        return cls(success=True, pdf_bytes=pdf_bytes)

    @classmethod
    def failed(cls, error: BridgeError) -> "OperationResult":
        return cls(success=False, error=error)


def filled_filename(original_name: str) -> str:
    """Download name for the generated PDF, e.g. "form.pdf" -> "filled_form.pdf"."""
    return f"{OUTPUT_FILENAME_PREFIX}{original_name}"


class FormFieldBridge:
    """Caller-owned bridge over a single PDF document and its interactive form.

    Usage:
        bridge = FormFieldBridge()
        bridge.load(pdf_bytes)
        fields = bridge.extract_fields()
        ...  # edit field.value in caller state
        bridge.fill_fields(fields)
        result = bridge.generate_output()
        bridge.cleanup()

    Calls are not queued or locked; callers sequence them for one instance.
    """

    def __init__(self, radio_export_values: bool = RADIO_OPTIONS_FROM_EXPORT_VALUES):
        self.radio_export_values = radio_export_values
        self.diagnostics: List[FieldEvent] = []
        self._writer: Optional[PdfWriter] = None
        self._form: Optional[AcroForm] = None

    @property
    def is_loaded(self) -> bool:
        return self._writer is not None

    @property
    def has_form(self) -> bool:
        return self._form is not None

    def load(self, pdf_bytes: bytes) -> OperationResult:
        """Parse `pdf_bytes`, replacing any previously loaded document."""
        self.cleanup()
        try:
            self._writer, self._form = self._parse(pdf_bytes)
        except LoadError as e:
            logger.warning(f"Error loading PDF: {e.message}")
            return OperationResult.failed(e)
        logger.info(f"Loaded PDF: {len(self._writer.pages)} page(s), form={'yes' if self._form else 'no'}")
        return OperationResult.ok()

    @staticmethod
    def _parse(pdf_bytes: bytes):
        data = bytes(pdf_bytes or b"")
        header = data.find(b"%PDF", 0, PDF_HEADER_SEARCH_LIMIT)
        if header < 0:
            raise LoadError(ERROR_MESSAGES['not_pdf'])
        try:
            # xref offsets count from the header, not from any junk before it
            reader = PdfReader(io.BytesIO(data[header:]))
            if getattr(reader, 'is_encrypted', False):
                raise LoadError(ERROR_MESSAGES['encrypted_pdf'])
            writer = PdfWriter(clone_from=reader)
        except LoadError:
            raise
        except Exception as e:
            raise LoadError(f"{ERROR_MESSAGES['load_failed']} ({e})") from e

        acro = resolve(writer._root_object.get("/AcroForm"))
        form = AcroForm(acro) if acro is not None else None
        return writer, form

    def extract_fields(self) -> List[FormField]:
        """Snapshot the loaded form's fields; empty when nothing (or no form) is loaded."""
        self.diagnostics = []
        return extract_fields(self._form, export_values=self.radio_export_values, events=self.diagnostics)

    def fill_fields(self, fields: Iterable[FormField]) -> OperationResult:
        """Write caller-edited values back into the document. Idempotent."""
        self.diagnostics = []
        if self._writer is None:
            return OperationResult.failed(FillError(FillErrorKind.NO_FORM))
        if self._form is None:
            return OperationResult.ok()  # no AcroForm: zero fields to fill
        try:
            fill_fields(self._writer, self._form, fields, events=self.diagnostics)
        except Exception as e:
            logger.exception(f"Error filling form fields: {e}")
            return OperationResult.failed(FillError(FillErrorKind.FILL_FAILED))
        return OperationResult.ok()

    def generate_output(self, flatten: bool = True) -> OperationResult:
        """Flatten the form (unless `flatten` is False) and serialize the document.

        Flattening is irreversible: afterwards the document has no fields and
        further fill_fields calls are no-ops.
        """
        self.diagnostics = []
        if self._writer is None:
            return OperationResult.failed(GenerateError(GenerateErrorKind.NO_DOCUMENT))
        try:
            if flatten and self._form is not None:
                flatten_form(self._writer, self._form, events=self.diagnostics)
            bio = io.BytesIO()
            self._writer.write(bio)
        except Exception as e:
            logger.exception(f"Error generating filled PDF: {e}")
            return OperationResult.failed(GenerateError(GenerateErrorKind.SERIALIZE_FAILED))
        return OperationResult.ok(bio.getvalue())

    def page_count(self) -> int:
        if self._writer is None:
            return 0
        return len(self._writer.pages)

    def cleanup(self):
        """Release the document and form handles. Safe to call at any time."""
        self._writer = None
        self._form = None
