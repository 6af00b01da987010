from __future__ import annotations
from typing import Iterable, List, Optional

from pypdf import PdfWriter

from .acroform import AcroForm, FieldCapability, NativeField
from .appearance import write_text_appearance
from .config import RADIO_OPTION_LABEL
from .logging_utils import FieldEvent, record_field_event
from .schema import FormField, FieldValue


def _radio_target(native: NativeField, value: FieldValue) -> int:
    """Widget index to select for a truthy radio value.

    "Option N" picks widget N, an export value picks its widget; anything else
    (e.g. the "selected" placeholder) keeps the current choice or takes the first.
    """
    if isinstance(value, str):
        placeholders = [RADIO_OPTION_LABEL.format(index=i + 1) for i in range(len(native.widgets))]
        if value in placeholders:
            return placeholders.index(value)
        exports = native.export_values()
        if value in exports:
            return exports.index(value)
    current = native.selected_index()
    return current if current is not None else 0


def fill_fields(
    writer: PdfWriter,
    form: AcroForm,
    fields: Iterable[FormField],
    events: Optional[List[FieldEvent]] = None,
):
    """Write FormField values back into their native fields, matched by exact name.

    Unknown names and kind mismatches are skipped. Text appearances are
    rebuilt on the matched field's own widgets so viewers and flattening show
    the new values.
    """
    natives = form.fields_by_name()
    for field in fields:
        native = natives.get(field.name)
        if native is None:
            record_field_event(events, FieldEvent("fill", field.name, "no field with this name"))
            continue
        capability = native.capability
        if capability is FieldCapability.TEXT and isinstance(field.value, str):
            native.set_text(field.value)
            for widget in native.widgets:
                write_text_appearance(writer, form, native, widget, field.value)
        elif capability is FieldCapability.CHECKBOX:
            if field.value:
                native.check()
            else:
                native.uncheck()
        elif capability is FieldCapability.RADIO_BUTTON and field.type == "radio":
            if field.value and native.widgets:
                native.select(_radio_target(native, field.value))
        elif capability in (FieldCapability.RADIO_BUTTON, FieldCapability.PLAIN_BUTTON, FieldCapability.SIGNATURE):
            continue  # nothing writable
        else:
            kind = capability.value if capability else "unsupported"
            record_field_event(events, FieldEvent("fill", field.name, f"{field.type} value does not fit {kind} field"))
