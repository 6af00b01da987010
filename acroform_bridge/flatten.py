"""Form flattening: bake widget appearances into page content.

Each widget's normal appearance stream is registered as a Form XObject on its
page and drawn at the widget rectangle; the widget annotation is then removed.
One-way: once flattened the document has no interactive fields left.
"""
from __future__ import annotations
from typing import List, Optional

from pypdf import PdfWriter
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    StreamObject,
)

from .acroform import AcroForm, resolve, inherited
from .appearance import build_missing_appearances, format_number
from .config import ANNOTATION_FLAG_HIDDEN, FLATTEN_XOBJECT_PREFIX
from .logging_utils import FieldEvent, logger


def _normal_appearance(writer: PdfWriter, widget: DictionaryObject) -> Optional[IndirectObject]:
    ap = resolve(widget.get("/AP"))
    if not isinstance(ap, DictionaryObject) or "/N" not in ap:
        return None
    ref = ap.raw_get("/N")
    normal = resolve(ref)
    if isinstance(normal, DictionaryObject) and not isinstance(normal, StreamObject):
        state = resolve(widget.get("/AS"))
        if state is None or state not in normal:
            return None
        ref = normal.raw_get(state)
        normal = resolve(ref)
    if not isinstance(normal, StreamObject):
        return None
    if not isinstance(ref, IndirectObject):
        ref = writer._add_object(normal)
    if "/Type" not in normal:
        normal[NameObject("/Type")] = NameObject("/XObject")
    if "/Subtype" not in normal:
        normal[NameObject("/Subtype")] = NameObject("/Form")
    return ref


def _placement(widget: DictionaryObject, stream: StreamObject, name: str) -> Optional[str]:
    """Content operators drawing `stream` so its /BBox fills the widget /Rect."""
    rect = resolve(widget.get("/Rect"))
    if rect is None or len(rect) != 4:
        return None
    r = [float(resolve(v)) for v in rect]
    x1, y1, x2, y2 = min(r[0], r[2]), min(r[1], r[3]), max(r[0], r[2]), max(r[1], r[3])
    box = resolve(stream.get("/BBox"))
    b = [float(resolve(v)) for v in box] if box is not None and len(box) == 4 else [0, 0, x2 - x1, y2 - y1]
    bx1, by1, bx2, by2 = min(b[0], b[2]), min(b[1], b[3]), max(b[0], b[2]), max(b[1], b[3])
    sx = (x2 - x1) / (bx2 - bx1) if bx2 > bx1 else 1.0
    sy = (y2 - y1) / (by2 - by1) if by2 > by1 else 1.0
    tx, ty = x1 - bx1 * sx, y1 - by1 * sy
    return f"q {format_number(sx)} 0 0 {format_number(sy)} {format_number(tx)} {format_number(ty)} cm {name} Do Q\n"


def _page_xobjects(page: DictionaryObject) -> DictionaryObject:
    resources = resolve(page.get("/Resources"))
    if not isinstance(resources, DictionaryObject):
        # copy inherited resources down so existing content keeps its fonts
        parent_resources = inherited(page, "/Resources")
        resources = DictionaryObject(parent_resources) if isinstance(parent_resources, DictionaryObject) else DictionaryObject()
        page[NameObject("/Resources")] = resources
    xobjects = resolve(resources.get("/XObject"))
    if not isinstance(xobjects, DictionaryObject):
        xobjects = DictionaryObject()
        resources[NameObject("/XObject")] = xobjects
    return xobjects


def _wrap_contents(writer: PdfWriter, page: DictionaryObject, operators: str):
    prefix = DecodedStreamObject()
    prefix.set_data(b"q\n")
    suffix = DecodedStreamObject()
    suffix.set_data(("Q\n" + operators).encode("latin-1"))

    parts = ArrayObject([writer._add_object(prefix)])
    existing = page.raw_get("/Contents") if "/Contents" in page else None
    resolved = resolve(existing)
    if isinstance(resolved, ArrayObject):
        parts.extend(resolved)
    elif isinstance(existing, IndirectObject):
        parts.append(existing)
    elif isinstance(resolved, StreamObject):
        parts.append(writer._add_object(resolved))
    parts.append(writer._add_object(suffix))
    page[NameObject("/Contents")] = parts


def flatten_form(writer: PdfWriter, form: Optional[AcroForm], events: Optional[List[FieldEvent]] = None) -> int:
    """Flatten every widget in the document. Returns the number of widgets drawn.

    Widgets the document left without an appearance get one built from their
    value first; widgets still lacking one afterwards are dropped.
    """
    if form is not None:
        build_missing_appearances(writer, form, events)
    drawn = 0
    counter = 0
    for page in writer.pages:
        annots = resolve(page.get("/Annots"))
        if not isinstance(annots, ArrayObject):
            continue
        kept = ArrayObject()
        operators: List[str] = []
        xobjects = None
        for ref in annots:
            annot = resolve(ref)
            if not isinstance(annot, DictionaryObject) or annot.get("/Subtype") != "/Widget":
                kept.append(ref)
                continue
            if int(resolve(annot.get("/F")) or 0) & ANNOTATION_FLAG_HIDDEN:
                continue
            appearance = _normal_appearance(writer, annot)
            if appearance is None:
                continue
            if xobjects is None:
                xobjects = _page_xobjects(page)
            name = f"{FLATTEN_XOBJECT_PREFIX}{counter}"
            while name in xobjects:
                counter += 1
                name = f"{FLATTEN_XOBJECT_PREFIX}{counter}"
            placement = _placement(annot, resolve(appearance), name)
            if placement is None:
                continue
            xobjects[NameObject(name)] = appearance
            operators.append(placement)
            counter += 1
        if operators:
            _wrap_contents(writer, page, "".join(operators))
            drawn += len(operators)
        if kept:
            page[NameObject("/Annots")] = kept
        else:
            del page["/Annots"]

    if form is not None:
        form.clear_fields()
    if "/AcroForm" in writer._root_object:
        del writer._root_object["/AcroForm"]
    logger.info(f"Flattened form: {drawn} widget appearance(s) baked into page content")
    return drawn
