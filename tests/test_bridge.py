"""Tests for FormFieldBridge load / extract / fill / generate / cleanup."""
import io
import re

from pypdf import PdfReader
from pypdf.generic import NameObject, NumberObject

from acroform_bridge import (
    FillErrorKind,
    FormFieldBridge,
    GenerateErrorKind,
    LoadError,
    filled_filename,
)
from acroform_bridge.config import ERROR_MESSAGES
from pdf_factory import FormBuilder, native_fields


def _by_name(fields):
    return {f.name: f for f in fields}


def _without_file_id(pdf_bytes: bytes) -> bytes:
    return re.sub(rb"/ID\s*\[[^\]]*\]", b"", pdf_bytes)


# ---- load ----

def test_load_rejects_non_pdf(bridge):
    result = bridge.load(b"hello world")
    assert not result.success
    assert isinstance(result.error, LoadError)
    assert result.message == ERROR_MESSAGES['not_pdf']
    assert bridge.page_count() == 0


def test_load_rejects_empty_bytes(bridge):
    result = bridge.load(b"")
    assert not result.success
    assert isinstance(result.error, LoadError)


def test_load_rejects_truncated_pdf(bridge, sample_pdf):
    result = bridge.load(sample_pdf[: len(sample_pdf) // 2])
    assert not result.success
    assert isinstance(result.error, LoadError)
    assert not bridge.is_loaded


def test_load_rejects_encrypted_pdf(bridge):
    builder = FormBuilder()
    builder.text("secret", "x")
    result = bridge.load(builder.to_bytes(password="pw"))
    assert not result.success
    assert result.message == ERROR_MESSAGES['encrypted_pdf']


def test_load_skips_junk_before_header(bridge, sample_pdf):
    result = bridge.load(b"\x00\x00junk\r\n" + sample_pdf)
    assert result.success
    assert len(bridge.extract_fields()) == 7


def test_load_header_must_start_near_the_top(bridge, sample_pdf):
    result = bridge.load(b" " * 2048 + sample_pdf)
    assert not result.success
    assert result.message == ERROR_MESSAGES['not_pdf']


def test_failed_load_drops_previous_document(loaded):
    assert not loaded.load(b"garbage").success
    assert loaded.page_count() == 0


def test_load_replaces_previous_document(loaded):
    other = FormBuilder(pages=2)
    other.text("only")
    assert loaded.load(other.to_bytes()).success
    assert loaded.page_count() == 2
    assert [f.name for f in loaded.extract_fields()] == ["only"]


# ---- documents without fields ----

def test_document_without_acroform():
    bridge = FormFieldBridge()
    assert bridge.load(FormBuilder(pages=3, with_form=False).to_bytes()).success
    assert not bridge.has_form
    assert bridge.extract_fields() == []
    assert bridge.page_count() == 3
    assert bridge.fill_fields([]).success
    result = bridge.generate_output()
    assert result.success
    assert len(PdfReader(io.BytesIO(result.pdf_bytes)).pages) == 3


def test_acroform_with_zero_fields():
    bridge = FormFieldBridge()
    assert bridge.load(FormBuilder(pages=2).to_bytes()).success
    assert bridge.has_form
    assert bridge.extract_fields() == []
    assert bridge.page_count() == 2


# ---- extract ----

def test_extract_before_load_is_empty(bridge):
    assert bridge.extract_fields() == []


def test_extract_fields(loaded):
    fields = loaded.extract_fields()
    by_name = _by_name(fields)

    assert by_name["firstName"].type == "text"
    assert by_name["firstName"].value == "Hello"
    assert by_name["firstName"].label == "First Name"
    assert by_name["full_name"].value == ""
    assert by_name["full_name"].label == "Full name"
    assert by_name["agree"].type == "checkbox"
    assert by_name["agree"].value is True
    assert by_name["optin"].value is False
    assert by_name["color"].type == "radio"
    assert by_name["color"].value == "selected"
    assert by_name["color"].options == ["Option 1", "Option 2", "Option 3"]
    assert by_name["submit"].type == "button"
    assert by_name["submit"].value == ""
    assert by_name["applicantSignature"].type == "signature"
    assert all(not f.required for f in fields)
    assert all(f.options is None for f in fields if f.type != "radio")


def test_ids_are_positional_and_skip_unsupported_fields():
    builder = FormBuilder()
    builder.text("a")
    builder.choice("pick")
    builder.checkbox("b")
    bridge = FormFieldBridge()
    bridge.load(builder.to_bytes())
    fields = bridge.extract_fields()
    assert [(f.id, f.name) for f in fields] == [("field_0", "a"), ("field_2", "b")]
    assert [(e.stage, e.field_name) for e in bridge.diagnostics] == [("extract", "pick")]


def test_unselected_radio_extracts_empty_string():
    builder = FormBuilder()
    builder.radio("size", states=("S", "M", "L"))
    bridge = FormFieldBridge()
    bridge.load(builder.to_bytes())
    (size,) = bridge.extract_fields()
    assert size.value == ""
    assert size.options == ["Option 1", "Option 2", "Option 3"]


def test_radio_export_values_option(sample_pdf):
    bridge = FormFieldBridge(radio_export_values=True)
    bridge.load(sample_pdf)
    color = _by_name(bridge.extract_fields())["color"]
    assert color.options == ["Red", "Green", "Blue"]


def test_unreadable_value_defaults_and_is_recorded():
    builder = FormBuilder()
    ref = builder.text("broken")
    ref.get_object()[NameObject("/V")] = NumberObject(42)
    bridge = FormFieldBridge()
    bridge.load(builder.to_bytes())
    (broken,) = bridge.extract_fields()
    assert broken.value == ""
    assert bridge.diagnostics[0].field_name == "broken"


def test_unnamed_widgets_beside_named_kids_are_reported():
    builder = FormBuilder()
    mixed = builder.group("mixed")
    builder.text("inner", "x", parent=mixed)
    builder.stray_widget(mixed)
    bridge = FormFieldBridge()
    bridge.load(builder.to_bytes())
    assert [f.name for f in bridge.extract_fields()] == ["mixed.inner"]
    assert [(e.stage, e.field_name) for e in bridge.diagnostics] == [("extract", "mixed")]


def test_extraction_is_a_snapshot(loaded):
    fields = loaded.extract_fields()
    _by_name(fields)["firstName"].value = "Changed"
    assert _by_name(loaded.extract_fields())["firstName"].value == "Hello"


# ---- fill ----

def test_fill_before_load_fails_with_no_form(bridge):
    result = bridge.fill_fields([])
    assert not result.success
    assert result.error.kind is FillErrorKind.NO_FORM


def test_fill_text_and_checkboxes(loaded):
    fields = _by_name(loaded.extract_fields())
    fields["full_name"].value = "Ada Lovelace"
    fields["agree"].value = False
    fields["optin"].value = True
    assert loaded.fill_fields(fields.values()).success

    refreshed = _by_name(loaded.extract_fields())
    assert refreshed["full_name"].value == "Ada Lovelace"
    assert refreshed["agree"].value is False
    assert refreshed["optin"].value is True
    assert refreshed["firstName"].value == "Hello"


def test_fill_radio_by_placeholder_option(loaded):
    color = _by_name(loaded.extract_fields())["color"]
    color.value = "Option 3"
    assert loaded.fill_fields([color]).success
    out = loaded.generate_output(flatten=False).pdf_bytes
    assert native_fields(out)["color"].selected_index() == 2


def test_fill_radio_selected_placeholder_keeps_current_choice(loaded):
    color = _by_name(loaded.extract_fields())["color"]
    assert color.value == "selected"
    assert loaded.fill_fields([color]).success
    out = loaded.generate_output(flatten=False).pdf_bytes
    assert native_fields(out)["color"].selected_index() == 1


def test_fill_selects_first_radio_when_none_selected():
    builder = FormBuilder()
    builder.radio("size", states=("S", "M"))
    bridge = FormFieldBridge()
    bridge.load(builder.to_bytes())
    (size,) = bridge.extract_fields()
    size.value = "selected"
    bridge.fill_fields([size])
    assert bridge.extract_fields()[0].value == "selected"
    out = bridge.generate_output(flatten=False).pdf_bytes
    assert native_fields(out)["size"].selected_index() == 0


def test_fill_unknown_name_is_skipped(loaded):
    before = [f.to_public() for f in loaded.extract_fields()]
    ghost = loaded.extract_fields()[0]
    ghost.name = "doesNotExist"
    ghost.value = "boo"
    result = loaded.fill_fields([ghost])
    events = list(loaded.diagnostics)
    assert result.success
    assert [(e.stage, e.field_name) for e in events] == [("fill", "doesNotExist")]
    assert [f.to_public() for f in loaded.extract_fields()] == before


def test_fill_leaves_fields_sharing_a_partial_name_alone():
    builder = FormBuilder()
    address = builder.group("address")
    builder.text("city", "Utrecht", parent=address)
    builder.text("city", "Amsterdam")
    bridge = FormFieldBridge()
    bridge.load(builder.to_bytes())
    city = _by_name(bridge.extract_fields())["city"]
    city.value = "Rotterdam"
    assert bridge.fill_fields([city]).success

    natives = native_fields(bridge.generate_output(flatten=False).pdf_bytes)
    assert natives["address.city"].get_text() == "Utrecht"
    assert natives["city"].get_text() == "Rotterdam"
    assert b"Rotterdam" not in natives["address.city"].widgets[0]["/AP"]["/N"].get_data()
    assert b"(Rotterdam) Tj" in natives["city"].widgets[0]["/AP"]["/N"].get_data()


def test_fill_type_mismatch_is_skipped(loaded):
    first = _by_name(loaded.extract_fields())["firstName"]
    first.value = True  # a boolean cannot go into a text field
    assert loaded.fill_fields([first]).success
    events = list(loaded.diagnostics)
    assert [e.field_name for e in events] == ["firstName"]
    assert _by_name(loaded.extract_fields())["firstName"].value == "Hello"


def test_fill_unexpected_error_is_reported(loaded, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("internal")
    monkeypatch.setattr("acroform_bridge.bridge.fill_fields", boom)
    result = loaded.fill_fields(loaded.extract_fields())
    assert not result.success
    assert result.error.kind is FillErrorKind.FILL_FAILED
    assert result.message == ERROR_MESSAGES['fill_failed']


def test_fill_is_idempotent(sample_pdf):
    def filled(times):
        bridge = FormFieldBridge()
        bridge.load(sample_pdf)
        fields = _by_name(bridge.extract_fields())
        fields["full_name"].value = "Grace Hopper"
        fields["optin"].value = True
        fields["color"].value = "Option 1"
        for _ in range(times):
            assert bridge.fill_fields(list(fields.values())).success
        return bridge.generate_output(flatten=False).pdf_bytes

    assert _without_file_id(filled(1)) == _without_file_id(filled(2))


def test_round_trip_preserves_values(loaded):
    fields = loaded.extract_fields()
    assert loaded.fill_fields(fields).success
    out = loaded.generate_output(flatten=False)

    reread = FormFieldBridge()
    assert reread.load(out.pdf_bytes).success
    assert [f.to_public() for f in reread.extract_fields()] == [f.to_public() for f in fields]


# ---- generate ----

def test_generate_before_load_fails_with_no_document(bridge):
    result = bridge.generate_output()
    assert not result.success
    assert result.error.kind is GenerateErrorKind.NO_DOCUMENT


def test_generate_serialize_failure(loaded, monkeypatch):
    def boom(stream):
        raise OSError("disk on fire")
    monkeypatch.setattr(loaded._writer, "write", boom)
    result = loaded.generate_output()
    assert not result.success
    assert result.error.kind is GenerateErrorKind.SERIALIZE_FAILED


def test_generate_flattens_form(loaded):
    result = loaded.generate_output()
    assert result.success
    assert result.pdf_bytes.startswith(b"%PDF")
    assert native_fields(result.pdf_bytes) == {}

    # flattening is one-way: the loaded document has no fields left
    assert loaded.extract_fields() == []
    assert loaded.fill_fields([]).success
    assert loaded.page_count() == 1


def test_unflattened_output_stays_editable(loaded):
    result = loaded.generate_output(flatten=False)
    assert set(native_fields(result.pdf_bytes)) >= {"firstName", "agree", "color"}
    assert len(loaded.extract_fields()) == 7


# ---- page count / cleanup ----

def test_page_count(bridge):
    assert bridge.page_count() == 0
    bridge.load(FormBuilder(pages=4).to_bytes())
    assert bridge.page_count() == 4


def test_cleanup(loaded):
    loaded.cleanup()
    assert loaded.page_count() == 0
    assert loaded.extract_fields() == []
    assert loaded.fill_fields([]).error.kind is FillErrorKind.NO_FORM
    assert loaded.generate_output().error.kind is GenerateErrorKind.NO_DOCUMENT
    loaded.cleanup()  # no-op when nothing is loaded


def test_bridges_are_independent(sample_pdf):
    first, second = FormFieldBridge(), FormFieldBridge()
    first.load(sample_pdf)
    second.load(sample_pdf)
    fields = _by_name(first.extract_fields())
    fields["full_name"].value = "Only First"
    first.fill_fields(fields.values())
    assert _by_name(second.extract_fields())["full_name"].value == ""


def test_filled_filename():
    assert filled_filename("tax-form.pdf") == "filled_tax-form.pdf"
