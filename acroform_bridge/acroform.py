"""Native AcroForm field model over pypdf objects.

Walks the /AcroForm /Fields tree into terminal fields, classifies each one once
into a closed capability set, and exposes the get/set operations the bridge
needs per capability (text, check state, radio selection).
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set

from pypdf.generic import (
    ArrayObject,
    DictionaryObject,
    NameObject,
    NullObject,
    StreamObject,
    TextStringObject,
)

from .config import FIELD_FLAG_RADIO, FIELD_FLAG_PUSHBUTTON, OFF_STATE, DEFAULT_ON_STATE
from .logging_utils import FieldEvent, record_field_event

MAX_PARENT_DEPTH = 32  # guards against /Parent cycles in malformed files


class FieldCapability(Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO_BUTTON = "radio"
    PLAIN_BUTTON = "button"
    SIGNATURE = "signature"


def resolve(obj: Any) -> Any:
    """Dereference indirect objects; PDF null becomes None."""
    if obj is None:
        return None
    if hasattr(obj, "get_object"):
        obj = obj.get_object()
    if isinstance(obj, NullObject):
        return None
    return obj


def inherited(node: DictionaryObject, key: str) -> Any:
    depth = 0
    while isinstance(node, DictionaryObject) and depth < MAX_PARENT_DEPTH:
        if key in node:
            return resolve(node.get(key))
        node = resolve(node.get("/Parent"))
        depth += 1
    return None


def appearance_states(widget: DictionaryObject) -> List[str]:
    """Names of the normal appearance states of a button widget (e.g. /Yes, /Off)."""
    ap = resolve(widget.get("/AP"))
    if not isinstance(ap, DictionaryObject):
        return []
    normal = resolve(ap.get("/N"))
    if not isinstance(normal, DictionaryObject) or isinstance(normal, StreamObject):
        return []
    return [str(k) for k in normal.keys()]


def on_state(widget: DictionaryObject) -> str:
    for state in appearance_states(widget):
        if state != OFF_STATE:
            return state
    return DEFAULT_ON_STATE


def classify_field(node: DictionaryObject) -> Optional[FieldCapability]:
    field_type = inherited(node, "/FT")
    flags = int(inherited(node, "/Ff") or 0)
    if field_type == "/Tx":
        return FieldCapability.TEXT
    if field_type == "/Btn":
        if flags & FIELD_FLAG_PUSHBUTTON:
            return FieldCapability.PLAIN_BUTTON
        if flags & FIELD_FLAG_RADIO:
            return FieldCapability.RADIO_BUTTON
        return FieldCapability.CHECKBOX
    if field_type == "/Sig":
        return FieldCapability.SIGNATURE
    return None


@dataclass
class NativeField:
    """A terminal AcroForm field with its capability decided at construction."""
    name: str
    node: DictionaryObject
    widgets: List[DictionaryObject]
    capability: Optional[FieldCapability]

    @classmethod
    def from_node(cls, name: str, node: DictionaryObject, widgets: List[DictionaryObject]) -> "NativeField":
        return cls(name=name, node=node, widgets=widgets, capability=classify_field(node))

    @property
    def flags(self) -> int:
        return int(inherited(self.node, "/Ff") or 0)

    @property
    def kid_count(self) -> int:
        kids = resolve(self.node.get("/Kids"))
        return len(kids) if isinstance(kids, ArrayObject) else 0

    def _value(self) -> Any:
        return inherited(self.node, "/V")

    # ---- text ----
    def get_text(self) -> str:
        value = self._value()
        if value is None:
            return ""
        if not isinstance(value, str):
            raise TypeError(f"Unsupported /V for text field {self.name!r}: {type(value).__name__}")
        return str(value)

    def set_text(self, text: str):
        self.node[NameObject("/V")] = TextStringObject(text)

    # ---- checkbox ----
    def is_checked(self) -> bool:
        value = self._value()
        if value is None and self.widgets:
            value = resolve(self.widgets[0].get("/AS"))
        return value is not None and str(value) != OFF_STATE

    def check(self):
        on = on_state(self.widgets[0]) if self.widgets else DEFAULT_ON_STATE
        self.node[NameObject("/V")] = NameObject(on)
        for widget in self.widgets:
            states = appearance_states(widget)
            widget[NameObject("/AS")] = NameObject(on if not states or on in states else OFF_STATE)

    def uncheck(self):
        self.node[NameObject("/V")] = NameObject(OFF_STATE)
        for widget in self.widgets:
            widget[NameObject("/AS")] = NameObject(OFF_STATE)

    # ---- radio ----
    def is_selected(self) -> bool:
        return self.selected_index() is not None

    def selected_index(self) -> Optional[int]:
        value = self._value()
        for index, widget in enumerate(self.widgets):
            state = resolve(widget.get("/AS"))
            if state is not None and str(state) != OFF_STATE:
                return index
            if value is not None and str(value) != OFF_STATE and str(value) in appearance_states(widget):
                return index
        return None

    def export_values(self) -> List[str]:
        return [on_state(widget).lstrip("/") for widget in self.widgets]

    def select(self, index: int = 0):
        target = self.widgets[index]
        on = on_state(target)
        self.node[NameObject("/V")] = NameObject(on)
        for position, widget in enumerate(self.widgets):
            widget[NameObject("/AS")] = NameObject(on if position == index else OFF_STATE)


class AcroForm:
    """Interactive form wrapper around a catalog's /AcroForm dictionary."""

    def __init__(self, form_dict: DictionaryObject):
        self.dict = form_dict

    def list_fields(self, events: Optional[List[FieldEvent]] = None) -> List[NativeField]:
        fields = resolve(self.dict.get("/Fields"))
        if not isinstance(fields, ArrayObject):
            return []
        return list(_walk(fields, None, set(), events))

    def fields_by_name(self) -> Dict[str, NativeField]:
        index: Dict[str, NativeField] = {}
        for native in self.list_fields():
            index.setdefault(native.name, native)
        return index

    def get_field(self, name: str) -> Optional[NativeField]:
        return self.fields_by_name().get(name)

    def clear_fields(self):
        self.dict[NameObject("/Fields")] = ArrayObject()


def _walk(refs: ArrayObject, parent_name: Optional[str], seen: Set[int],
          events: Optional[List[FieldEvent]] = None) -> Iterator[NativeField]:
    for ref in refs:
        node = resolve(ref)
        if not isinstance(node, DictionaryObject) or id(node) in seen:
            continue
        seen.add(id(node))
        partial = node.get("/T")
        name = ".".join(str(p) for p in (parent_name, resolve(partial)) if p)
        kids = resolve(node.get("/Kids"))
        kid_nodes = [resolve(k) for k in kids] if isinstance(kids, ArrayObject) else []
        kid_nodes = [k for k in kid_nodes if isinstance(k, DictionaryObject)]
        named = [k for k in kid_nodes if "/T" in k]
        if named:
            stray = len(kid_nodes) - len(named)
            if stray:
                record_field_event(events, FieldEvent("extract", name, f"{stray} unnamed widget kid(s) beside named kids ignored"))
            yield from _walk(ArrayObject(named), name, seen, events)
            continue
        yield NativeField.from_node(name, node, kid_nodes or [node])
