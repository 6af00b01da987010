from __future__ import annotations
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Union, Literal
import re

FieldKind = Literal["text", "checkbox", "radio", "signature", "button"]

FieldValue = Union[str, bool]

_UPPERCASE = re.compile(r"([A-Z])")


def format_field_label(field_name: str) -> str:
    """Derive a human-readable label from a native field name.

    Heuristic only: every uppercase letter gets a space in front of it, so
    "ZIPCode" becomes "Z I P Code" rather than "ZIP Code".
    """
    label = _UPPERCASE.sub(r" \1", field_name)
    label = label[:1].upper() + label[1:]
    label = label.replace("_", " ")
    return label.strip()


@dataclass
class FormField:
    """Flat, UI-facing snapshot of one native form field.

    Created at extraction time and never bound back to the document; the
    caller edits `value` and hands the list to FormFieldBridge.fill_fields.
    """
    id: str  # field_<index> by native enumeration position
    name: str  # fully qualified native name, used for lookup at fill time
    type: FieldKind
    label: str
    value: FieldValue
    required: bool = False  # the inspected field kinds carry no required flag
    options: Optional[List[str]] = None  # radio only

    def to_public(self) -> Dict[str, Any]:  # stable outward shape
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "label": self.label,
            "value": self.value,
            "required": self.required,
            **({"options": list(self.options)} if self.options is not None else {}),
        }
