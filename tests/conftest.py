import pytest

from acroform_bridge import FormFieldBridge
from pdf_factory import FormBuilder


@pytest.fixture
def sample_pdf() -> bytes:
    """A one-page form with one field of every kind the bridge knows, plus a choice field."""
    builder = FormBuilder()
    builder.text("firstName", "Hello")
    builder.text("full_name")
    builder.checkbox("agree", checked=True)
    builder.checkbox("optin", checked=False)
    builder.radio("color", states=("Red", "Green", "Blue"), selected="Green")
    builder.push_button("submit")
    builder.signature("applicantSignature")
    builder.choice("country", options=("NL", "DE"))
    return builder.to_bytes()


@pytest.fixture
def bridge():
    b = FormFieldBridge()
    yield b
    b.cleanup()


@pytest.fixture
def loaded(bridge, sample_pdf):
    assert bridge.load(sample_pdf).success
    return bridge
