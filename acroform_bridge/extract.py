from __future__ import annotations
from typing import List, Optional

from .acroform import AcroForm, FieldCapability, NativeField, inherited
from .config import RADIO_SELECTED_VALUE, RADIO_OPTION_LABEL, RADIO_OPTIONS_FROM_EXPORT_VALUES
from .logging_utils import FieldEvent, record_field_event
from .schema import FormField, FieldValue, format_field_label


def _default_value(capability: FieldCapability) -> FieldValue:
    return False if capability is FieldCapability.CHECKBOX else ""


def _read_value(native: NativeField, events: Optional[List[FieldEvent]]) -> FieldValue:
    try:
        if native.capability is FieldCapability.TEXT:
            return native.get_text()
        if native.capability is FieldCapability.CHECKBOX:
            return native.is_checked()
        if native.capability is FieldCapability.RADIO_BUTTON:
            return RADIO_SELECTED_VALUE if native.is_selected() else ""
    except Exception as e:
        record_field_event(events, FieldEvent("extract", native.name, f"value unreadable, defaulted: {e}"))
        return _default_value(native.capability)
    return ""


def _radio_options(native: NativeField, export_values: bool, events: Optional[List[FieldEvent]]) -> List[str]:
    """Option labels for a radio group.

    By default these are positional placeholders ("Option 1", "Option 2", ...),
    one per child widget, not the document's export values.
    """
    try:
        if export_values:
            return native.export_values()
        return [RADIO_OPTION_LABEL.format(index=i + 1) for i in range(native.kid_count)]
    except Exception as e:
        record_field_event(events, FieldEvent("extract", native.name, f"options unreadable: {e}"))
        return []


def extract_fields(
    form: Optional[AcroForm],
    export_values: bool = RADIO_OPTIONS_FROM_EXPORT_VALUES,
    events: Optional[List[FieldEvent]] = None,
) -> List[FormField]:
    """Snapshot the form's fields as flat FormField records.

    Fields keep the document's native enumeration order, which is not
    necessarily the visual or tab order. Ids are positional over every native
    field, so fields skipped for an unsupported type leave gaps in the ids.
    """
    if form is None:
        return []

    collected: List[FormField] = []
    for index, native in enumerate(form.list_fields(events)):
        if native.capability is None:
            field_type = inherited(native.node, "/FT")
            record_field_event(events, FieldEvent("extract", native.name, f"unsupported field type {field_type}"))
            continue
        kind = native.capability.value
        collected.append(FormField(
            id=f"field_{index}",
            name=native.name,
            type=kind,
            label=format_field_label(native.name),
            value=_read_value(native, events),
            required=False,
            options=_radio_options(native, export_values, events) if native.capability is FieldCapability.RADIO_BUTTON else None,
        ))
    return collected
