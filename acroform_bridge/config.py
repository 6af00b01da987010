"""
Configuration settings for the AcroForm bridge.
Consolidates all constants and configuration in one place.
"""
import os

# Field flag bits (/Ff)
FIELD_FLAG_RADIO = 1 << 15  # bit 16, "Radio"
FIELD_FLAG_MULTILINE = 1 << 12  # bit 13, "Multiline" on text fields
FIELD_FLAG_PUSHBUTTON = 1 << 16  # bit 17, "Pushbutton"

# Annotation flag (/F) bit for hidden widgets
ANNOTATION_FLAG_HIDDEN = 1 << 1

# Extraction placeholders
RADIO_SELECTED_VALUE = "selected"
RADIO_OPTION_LABEL = "Option {index}"

# Radio options: False keeps positional "Option N" placeholders,
# True reads each widget's export value from its appearance states.
RADIO_OPTIONS_FROM_EXPORT_VALUES = False

# Appearance state names
OFF_STATE = "/Off"
DEFAULT_ON_STATE = "/Yes"

# Generated appearances
DEFAULT_APPEARANCE = "/Helv 0 Tf 0 g"
DEFAULT_FONT_SIZE = 12
MIN_FONT_SIZE = 4
TEXT_PADDING = 2
CHECK_GLYPHS = {"checkbox": "4", "radio": "l"}  # ZapfDingbats check mark and bullet

# Loading
PDF_HEADER_SEARCH_LIMIT = 1024  # leading junk tolerated before %PDF

# Download naming
OUTPUT_FILENAME_PREFIX = "filled_"

# Flattening
FLATTEN_XOBJECT_PREFIX = "/FlatWidget"

# Logging Configuration
LOGGER_NAME = "acroform_bridge"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
DIAGNOSTIC_LOG_FILE = os.getenv("ACROFORM_DIAGNOSTIC_LOG")  # JSON lines; unset disables

# Error Messages
ERROR_MESSAGES = {
    'not_pdf': 'Not a PDF file',
    'encrypted_pdf': 'Encrypted PDF not supported',
    'load_failed': "Failed to load PDF. Please ensure it's a valid PDF file.",
    'no_form': 'No PDF form loaded',
    'fill_failed': 'Failed to fill form fields',
    'no_document': 'No PDF document loaded',
    'serialize_failed': 'Failed to generate filled PDF',
}
