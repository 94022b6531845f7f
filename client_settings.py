# ==========================================
# ⚙️ INSTITUTE CONFIGURATION FILE
# ==========================================
# Edit this file to re-brand the admission pipeline for another institute.
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

# --- BRANDING ---
APP_TITLE = "SkyPro Aviation Admissions"  # Shows in browser tab
PAGE_ICON = "✈️"                           # Browser tab icon
INSTITUTE_NAME = "SkyPro Aviation"
TAGLINE = "Excellence in Aviation Training"

# --- CONTACT INFO ---
OFFICE_PHONE = "+91 8209388460"

# --- STORAGE ---
OUTPUT_DIR = Path(os.getenv("ADMISSION_OUTPUT_DIR", BASE_DIR / "uploads"))
UPLOAD_DIR = Path(os.getenv("ADMISSION_UPLOAD_DIR", BASE_DIR / "uploads" / "incoming"))

# --- PAGE ARTWORK (optional, skipped when missing) ---
HEADER_IMAGE = BASE_DIR / "assets" / "header.png"
FOOTER_IMAGE = BASE_DIR / "assets" / "footer.png"

# --- LEGAL TEXT ---
DECLARATION_TEXT = (
    "I hereby declare that all the information provided above is true and correct "
    "to the best of my knowledge. I understand that any false information may result "
    "in the cancellation of my admission."
)
FOOTER_NOTE = (
    "This is a computer-generated document. For any queries, please contact the "
    "admission office."
)

# --- PDF COLORS ---
PRIMARY_COLOR = "#003366"
ACCENT_COLOR = "#f4b221"
SECTION_FILL = "#f0f4f8"
ROW_FILL = "#fafbfc"
DECLARATION_FILL = "#fffbf0"
TEXT_COLOR = "#1a1a1a"
MUTED_COLOR = "#666666"
BOX_COLOR = "#cccccc"
