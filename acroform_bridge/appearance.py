"""Appearance streams for text and button widgets.

Text appearances are written onto the widgets of one already-resolved field,
never looked up by name, so a value cannot leak into another field that shares
its partial name. Flattening also uses this module to build the appearances a
document left out (e.g. files relying on /NeedAppearances).
"""
from __future__ import annotations
import re
from typing import List, Optional, Tuple

from pypdf import PdfWriter
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    FloatObject,
    IndirectObject,
    NameObject,
    StreamObject,
)

from .acroform import AcroForm, FieldCapability, NativeField, appearance_states, inherited, resolve
from .config import (
    CHECK_GLYPHS,
    DEFAULT_APPEARANCE,
    DEFAULT_FONT_SIZE,
    DEFAULT_ON_STATE,
    FIELD_FLAG_MULTILINE,
    MIN_FONT_SIZE,
    OFF_STATE,
    TEXT_PADDING,
)
from .logging_utils import FieldEvent, record_field_event

_FONT_OPERATOR = re.compile(r"/([^\s/]+)\s+(-?\d*\.?\d+)\s+Tf")

_STANDARD_FONTS = {
    "/Helv": "/Helvetica",
    "/ZaDb": "/ZapfDingbats",
}


def format_number(value: float) -> str:
    text = ("%.4f" % value).rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def _escape(text: str) -> bytes:
    raw = text.encode("cp1252", "replace")
    return raw.replace(b"\\", b"\\\\").replace(b"(", b"\\(").replace(b")", b"\\)")


def _widget_size(widget: DictionaryObject) -> Tuple[float, float]:
    rect = resolve(widget.get("/Rect"))
    if rect is None or len(rect) != 4:
        return 0.0, 0.0
    r = [float(resolve(v)) for v in rect]
    return abs(r[2] - r[0]), abs(r[3] - r[1])


def _has_normal_stream(widget: DictionaryObject) -> bool:
    ap = resolve(widget.get("/AP"))
    return isinstance(ap, DictionaryObject) and isinstance(resolve(ap.get("/N")), StreamObject)


def _font_resource(writer: PdfWriter, form: AcroForm, font_name: str) -> Tuple[str, object]:
    """Resolve `font_name` in the form's /DR, registering a standard font there once if absent."""
    resources = resolve(form.dict.get("/DR"))
    fonts = resolve(resources.get("/Font")) if isinstance(resources, DictionaryObject) else None
    if isinstance(fonts, DictionaryObject) and font_name in fonts:
        return font_name, fonts.raw_get(font_name)

    fallback = font_name if font_name in _STANDARD_FONTS else "/Helv"
    if isinstance(fonts, DictionaryObject) and fallback in fonts:
        return fallback, fonts.raw_get(fallback)

    font = DictionaryObject({
        NameObject("/Type"): NameObject("/Font"),
        NameObject("/Subtype"): NameObject("/Type1"),
        NameObject("/BaseFont"): NameObject(_STANDARD_FONTS[fallback]),
    })
    if fallback == "/Helv":
        font[NameObject("/Encoding")] = NameObject("/WinAnsiEncoding")
    ref = writer._add_object(font)
    if not isinstance(resources, DictionaryObject):
        resources = DictionaryObject()
        form.dict[NameObject("/DR")] = resources
    if not isinstance(fonts, DictionaryObject):
        fonts = DictionaryObject()
        resources[NameObject("/Font")] = fonts
    fonts[NameObject(fallback)] = ref
    return fallback, ref


def _parse_appearance(da: str) -> Tuple[str, float, str]:
    """Split a /DA string into font name, font size and the remaining (color) operators."""
    match = _FONT_OPERATOR.search(da)
    if match is None:
        return "/Helv", 0.0, da.strip()
    rest = (da[:match.start()] + da[match.end():]).strip()
    return "/" + match.group(1), float(match.group(2)), rest


def _form_xobject(content: bytes, width: float, height: float, font_name: str, font_ref) -> DecodedStreamObject:
    stream = DecodedStreamObject()
    stream.set_data(content)
    stream.update({
        NameObject("/Type"): NameObject("/XObject"),
        NameObject("/Subtype"): NameObject("/Form"),
        NameObject("/BBox"): ArrayObject([FloatObject(0), FloatObject(0), FloatObject(width), FloatObject(height)]),
        NameObject("/Resources"): DictionaryObject({
            NameObject("/Font"): DictionaryObject({NameObject(font_name): font_ref}),
        }),
    })
    return stream


def _install_normal(writer: PdfWriter, widget: DictionaryObject, stream: StreamObject):
    """Make `stream` the widget's /AP /N, reusing the existing object slot so refills add no objects."""
    ap = resolve(widget.get("/AP"))
    current = ap.raw_get("/N") if isinstance(ap, DictionaryObject) and "/N" in ap else None
    if isinstance(current, IndirectObject) and current.pdf is writer and isinstance(resolve(current), StreamObject):
        writer._objects[current.idnum - 1] = stream
        stream.indirect_reference = IndirectObject(current.idnum, 0, writer)
        return
    ref = writer._add_object(stream)
    if not isinstance(ap, DictionaryObject):
        ap = DictionaryObject()
        widget[NameObject("/AP")] = ap
    ap[NameObject("/N")] = ref


def text_content(text: str, width: float, height: float, font_name: str, size: float,
                 color: str, multiline: bool = False, quadding: int = 0) -> bytes:
    """Content operators drawing `text` inside a width x height box."""
    if size <= 0:
        size = DEFAULT_FONT_SIZE if multiline else min(DEFAULT_FONT_SIZE, max(MIN_FONT_SIZE, height * 0.7))
    lines: List[str] = text.splitlines() if multiline else [text.replace("\r", " ").replace("\n", " ")]
    leading = size * 1.15
    if multiline:
        y = height - TEXT_PADDING - size
    else:
        y = (height - size) / 2 + size * 0.22

    ops = [
        b"/Tx BMC",
        b"q",
        f"{TEXT_PADDING / 2:g} {TEXT_PADDING / 2:g} {format_number(width - TEXT_PADDING)} "
        f"{format_number(height - TEXT_PADDING)} re W n".encode("latin-1"),
        b"BT",
        f"{font_name} {format_number(size)} Tf".encode("latin-1"),
    ]
    if color:
        ops.append(color.encode("latin-1"))
    for line in lines:
        # Helvetica averages roughly half an em per glyph
        estimate = len(line) * size * 0.5
        if quadding == 1:
            x = max(TEXT_PADDING, (width - estimate) / 2)
        elif quadding == 2:
            x = max(TEXT_PADDING, width - TEXT_PADDING - estimate)
        else:
            x = TEXT_PADDING
        ops.append(f"1 0 0 1 {format_number(x)} {format_number(y)} Tm".encode("latin-1"))
        ops.append(b"(" + _escape(line) + b") Tj")
        y -= leading
    ops += [b"ET", b"Q", b"EMC"]
    return b"\n".join(ops) + b"\n"


def write_text_appearance(writer: PdfWriter, form: AcroForm, native: NativeField,
                          widget: DictionaryObject, text: str):
    da = inherited(widget, "/DA") or resolve(form.dict.get("/DA")) or DEFAULT_APPEARANCE
    font_name, size, color = _parse_appearance(str(da))
    font_name, font_ref = _font_resource(writer, form, font_name)
    quadding = inherited(widget, "/Q")
    if quadding is None:
        quadding = resolve(form.dict.get("/Q"))
    width, height = _widget_size(widget)
    content = text_content(
        text, width, height, font_name, size, color,
        multiline=bool(native.flags & FIELD_FLAG_MULTILINE),
        quadding=int(quadding or 0),
    )
    _install_normal(writer, widget, _form_xobject(content, width, height, font_name, font_ref))


def write_button_appearance(writer: PdfWriter, form: AcroForm, native: NativeField, widget: DictionaryObject):
    """Give a button widget with no appearance states an on and an /Off appearance."""
    state = resolve(widget.get("/AS"))
    if state is None and native.capability is FieldCapability.CHECKBOX:
        state = inherited(native.node, "/V")
    checked = state is not None and str(state) != OFF_STATE
    on = str(state) if checked else DEFAULT_ON_STATE
    font_name, font_ref = _font_resource(writer, form, "/ZaDb")
    width, height = _widget_size(widget)
    size = max(MIN_FONT_SIZE, min(width, height) * 0.8)
    glyph = CHECK_GLYPHS[native.capability.value]
    content = (
        f"q BT {font_name} {format_number(size)} Tf 0 g "
        f"{format_number((width - size * 0.75) / 2)} {format_number((height - size * 0.7) / 2)} Td "
        f"({glyph}) Tj ET Q\n"
    ).encode("latin-1")

    widget[NameObject("/AP")] = DictionaryObject({
        NameObject("/N"): DictionaryObject({
            NameObject(on): writer._add_object(_form_xobject(content, width, height, font_name, font_ref)),
            NameObject(OFF_STATE): writer._add_object(_form_xobject(b"", width, height, font_name, font_ref)),
        }),
    })
    widget[NameObject("/AS")] = NameObject(on if checked else OFF_STATE)


def _needs_all_appearances(form: AcroForm) -> bool:
    flag = resolve(form.dict.get("/NeedAppearances"))
    return bool(getattr(flag, "value", flag))


def build_missing_appearances(writer: PdfWriter, form: AcroForm,
                              events: Optional[List[FieldEvent]] = None) -> int:
    """Create appearances for widgets that have none, so their values survive flattening.

    With /NeedAppearances set every text widget is regenerated from its value.
    Returns the number of widgets given a new appearance.
    """
    regenerate_text = _needs_all_appearances(form)
    built = 0
    for native in form.list_fields():
        for widget in native.widgets:
            if native.capability is FieldCapability.TEXT:
                if not regenerate_text and _has_normal_stream(widget):
                    continue
                try:
                    text = native.get_text()
                except TypeError as e:
                    record_field_event(events, FieldEvent("generate", native.name, f"no appearance built: {e}"))
                    continue
                write_text_appearance(writer, form, native, widget, text)
                built += 1
            elif native.capability in (FieldCapability.CHECKBOX, FieldCapability.RADIO_BUTTON):
                if appearance_states(widget):
                    continue
                write_button_appearance(writer, form, native, widget)
                built += 1
    return built
