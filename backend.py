import json
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from PIL import Image
from pypdf import PdfReader, PdfWriter
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph

import client_settings as cs
from config import DOCUMENT_CHECKLIST, FORM_SECTIONS, INLINE_IMAGE_ROLES, PAYMENT_RECEIPT
from models import coerce_uploads

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
PLACEHOLDER = "N/A"

# Layout runs top-down in points; a page break resets the cursor here
PAGE_TOP = 100
SECTION_BREAK_AT = 650
ROW_BREAK_AT = 680
DECLARATION_BREAK_AT = 600
ROW_HEIGHT = 22
LINE_HEIGHT = 12

HEADER_HEIGHT = 70
FOOTER_TOP = 792
FOOTER_HEIGHT = 40
# office block plus footer note; it must end above the footer artwork
OFFICE_BLOCK_HEIGHT = 290
OFFICE_BREAK_AT = FOOTER_TOP - OFFICE_BLOCK_HEIGHT
RIGHT_COLUMN_X = 430

DECLARATION_STYLE = ParagraphStyle(
    "Declaration",
    fontName="Helvetica",
    fontSize=10,
    leading=13,
    alignment=TA_JUSTIFY,
    textColor=HexColor(cs.TEXT_COLOR),
)


@dataclass
class Section:
    title: str
    rows: list = field(default_factory=list)
    show_photo: bool = False
    show_signature: bool = False


def find_uploaded_file(uploaded_files, field_name):
    for upload in uploaded_files:
        if upload.field_name == field_name:
            return upload
    return None


def parse_dgca_subjects(value):
    """Subjects arrive as a JSON list; older submissions send a plain string."""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(subject) for subject in value)
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return str(value)
    if isinstance(parsed, list):
        return ", ".join(str(subject) for subject in parsed)
    if parsed is None:
        return str(value)
    return str(parsed)


def _display(value):
    return str(value) if value else PLACEHOLDER


def _rows(form_data, key):
    return [(label, _display(form_data.get(name))) for label, name in FORM_SECTIONS[key]["fields"]]


def document_status(form_data, uploaded_files):
    checklist = list(DOCUMENT_CHECKLIST)
    if form_data.get("feesPaid") == "Yes":
        checklist.append(PAYMENT_RECEIPT)

    roles = {upload.field_name for upload in uploaded_files}
    return [(label, "Attached" if role in roles else "Not Attached") for label, role in checklist]


def build_sections(form_data, uploaded_files):
    """Return the seven form sections with their label/value rows."""
    uploaded_files = coerce_uploads(uploaded_files)

    academic = _rows(form_data, "academic")
    if form_data.get("class12Stream"):
        academic.insert(2, ("Class 12 Stream", _display(form_data["class12Stream"])))

    course = _rows(form_data, "course")
    if form_data.get("modeOfClass"):
        course.append(("Mode of Class", _display(form_data["modeOfClass"])))

    fees = _rows(form_data, "fees")
    if form_data.get("feesPaid") == "Yes":
        fees.append(("Mode of Payment", _display(form_data.get("paymentMode"))))
        fees.append(("Installments", _display(form_data.get("installment"))))
        if form_data.get("paymentMode") != "Cash" and form_data.get("transactionId"):
            fees.append(("Transaction ID", _display(form_data["transactionId"])))
        if form_data.get("paymentDate"):
            fees.append(("Payment Date", _display(form_data["paymentDate"])))

    aviation = _rows(form_data, "aviation")
    if form_data.get("dgcaPapersCleared") == "Yes" and form_data.get("dgcaSubjects"):
        aviation.append(("DGCA Subjects", parse_dgca_subjects(form_data["dgcaSubjects"])))

    return [
        Section(FORM_SECTIONS["student"]["title"], _rows(form_data, "student"), True, True),
        Section(FORM_SECTIONS["parent"]["title"], _rows(form_data, "parent")),
        Section(FORM_SECTIONS["academic"]["title"], academic),
        Section(FORM_SECTIONS["course"]["title"], course),
        Section(FORM_SECTIONS["fees"]["title"], fees),
        Section(FORM_SECTIONS["aviation"]["title"], aviation),
        Section(FORM_SECTIONS["documents"]["title"], document_status(form_data, uploaded_files)),
    ]


def fit_to_page(image_width, image_height, page_width=PAGE_WIDTH, page_height=PAGE_HEIGHT):
    """Scale an image onto the page by its dominant side, centred on the other.

    Returns ``(width, height, x, y)``.
    """
    image_aspect = image_width / image_height
    page_aspect = page_width / page_height
    if image_aspect > page_aspect:
        width = page_width
        height = page_width / image_aspect
        return width, height, 0, (page_height - height) / 2
    height = page_height
    width = page_height * image_aspect
    return width, height, (page_width - width) / 2, 0


def merge_uploaded_pdfs(pdf_path, pdf_files):
    """Append every page of each uploaded PDF to ``pdf_path``, in input order.

    A file that cannot be read is logged and skipped.
    """
    pdf_files = [upload for upload in pdf_files if upload.exists()]
    if not pdf_files:
        return 0

    logger.info("Merging %d PDF document(s) into %s", len(pdf_files), pdf_path.name)
    writer = PdfWriter(clone_from=PdfReader(str(pdf_path)))

    merged = 0
    for upload in pdf_files:
        # a file is merged whole or not at all
        try:
            reader = PdfReader(str(upload.path))
            pages = list(reader.pages)
            scratch = PdfWriter()
            for page in pages:
                scratch.add_page(page)
        except Exception as exc:
            logger.error("Error merging PDF %s: %s", upload.original_name, exc)
            continue
        for page in scratch.pages:
            writer.add_page(page)
        merged += 1
        logger.info("Merged PDF %s (%d pages)", upload.original_name, len(pages))

    with open(pdf_path, "wb") as f:
        writer.write(f)
    logger.info("Final PDF saved with %d pages", len(writer.pages))
    return merged


def _output_path(output_dir):
    stamp = int(time.time() * 1000)
    pdf_path = output_dir / f"admission-{stamp}.pdf"
    while pdf_path.exists():
        stamp += 1
        pdf_path = output_dir / f"admission-{stamp}.pdf"
    return pdf_path


class AdmissionFormRenderer:
    """Draws the admission form onto an A4 canvas.

    Drawing methods take the vertical cursor ``y`` (points from the top of
    the page) and return where the next block starts.
    """

    def __init__(self, form_data, uploaded_files=(), output_dir=None):
        self.form_data = form_data
        self.uploaded_files = coerce_uploads(uploaded_files)
        self.output_dir = Path(output_dir or cs.OUTPUT_DIR)

    def render(self):
        self.output_dir.mkdir(parents=True, exist_ok=True)
        pdf_path = _output_path(self.output_dir)

        c = canvas.Canvas(str(pdf_path), pagesize=A4)
        c.setTitle("Student Admission Form")
        c.setAuthor(cs.INSTITUTE_NAME)

        self.draw_page_frame(c)
        y = self.draw_title(c)
        for section in build_sections(self.form_data, self.uploaded_files):
            y = self.draw_section(c, y, section)
        y = self.draw_declaration(c, y)
        y = self.draw_signatures(c, y)
        y = self.draw_office_use(c, y)
        self.draw_footer_note(c, y)
        image_pages = self.append_image_pages(c)
        c.save()
        logger.info("Admission form written to %s (%d image page(s))", pdf_path, image_pages)

        merge_uploaded_pdfs(pdf_path, [upload for upload in self.uploaded_files if upload.is_pdf])
        return pdf_path

    # --- primitives (top-based coordinates) ---

    def _text(self, c, x, y, text, font="Helvetica", size=10, color=cs.TEXT_COLOR):
        c.setFont(font, size)
        c.setFillColor(HexColor(color))
        c.drawString(x, PAGE_HEIGHT - y - size * 0.8, text)

    def _box(self, c, x, y, width, height, stroke=cs.BOX_COLOR, fill=None, line_width=1):
        c.setLineWidth(line_width)
        c.setStrokeColor(HexColor(stroke))
        if fill:
            c.setFillColor(HexColor(fill))
        c.rect(x, PAGE_HEIGHT - y - height, width, height, stroke=1, fill=1 if fill else 0)

    def _shade(self, c, x, y, width, height, color):
        c.setFillColor(HexColor(color))
        c.rect(x, PAGE_HEIGHT - y - height, width, height, stroke=0, fill=1)

    def _place_image(self, c, path, x, y, width, height):
        try:
            c.drawImage(
                str(path), x, PAGE_HEIGHT - y - height, width=width, height=height,
                preserveAspectRatio=True, anchor="c", mask="auto",
            )
        except Exception as exc:
            logger.warning("Could not place image %s: %s", path, exc)
            return False
        return True

    def _place_upload(self, c, role, x, y, width, height):
        upload = find_uploaded_file(self.uploaded_files, role)
        if upload is None or not upload.exists():
            return None
        return self._place_image(c, upload.path, x, y, width, height)

    def _caption(self, c, x, y, text):
        self._text(c, x, y, text, size=8, color=cs.MUTED_COLOR)

    # --- pages ---

    def draw_page_frame(self, c):
        if Path(cs.HEADER_IMAGE).is_file():
            self._place_image(c, cs.HEADER_IMAGE, 0, 0, PAGE_WIDTH, HEADER_HEIGHT)
        if Path(cs.FOOTER_IMAGE).is_file():
            self._place_image(c, cs.FOOTER_IMAGE, 0, FOOTER_TOP, PAGE_WIDTH, FOOTER_HEIGHT)

    def new_page(self, c):
        c.showPage()
        self.draw_page_frame(c)
        return PAGE_TOP

    def ensure_room(self, c, y, limit):
        if y > limit:
            return self.new_page(c)
        return y

    def draw_title(self, c):
        c.setFont("Helvetica-Bold", 22)
        c.setFillColor(HexColor(cs.PRIMARY_COLOR))
        c.drawCentredString(PAGE_WIDTH / 2, PAGE_HEIGHT - 118, "STUDENT ADMISSION FORM")

        c.setStrokeColor(HexColor(cs.ACCENT_COLOR))
        c.setLineWidth(3)
        c.line(150, PAGE_HEIGHT - 130, 445, PAGE_HEIGHT - 130)
        return 160

    def draw_section_header(self, c, y, title):
        self._box(c, MARGIN, y - 5, CONTENT_WIDTH, 25, stroke=cs.PRIMARY_COLOR,
                  fill=cs.SECTION_FILL, line_width=1.5)
        self._text(c, 60, y + 2, title, font="Helvetica-Bold", size=13, color=cs.PRIMARY_COLOR)
        return y + 30

    def draw_section(self, c, y, section):
        y = self.ensure_room(c, y, SECTION_BREAK_AT)
        y = self.draw_section_header(c, y, section.title)

        has_column = section.show_photo or section.show_signature
        if has_column:
            self.draw_identity_column(c, y, section)
        field_width = 370 if has_column else CONTENT_WIDTH

        for index, (label, value) in enumerate(section.rows):
            y = self.ensure_room(c, y, ROW_BREAK_AT)
            lines = simpleSplit(value, "Helvetica", 10, field_width - 190) or [value]
            row_height = max(ROW_HEIGHT, LINE_HEIGHT * len(lines) + 10)

            if index % 2 == 0:
                self._shade(c, MARGIN, y - 3, field_width, row_height, cs.ROW_FILL)
            self._text(c, 60, y, f"{label}:", font="Helvetica-Bold", color=cs.PRIMARY_COLOR)
            for offset, line in enumerate(lines):
                self._text(c, 240, y + offset * LINE_HEIGHT, line)
            y += row_height

        return y + 15

    def draw_identity_column(self, c, y, section):
        x = RIGHT_COLUMN_X
        if section.show_photo:
            self._box(c, x, y, 100, 120, stroke=cs.PRIMARY_COLOR, line_width=1.5)
            placed = self._place_upload(c, "photo", x + 5, y + 5, 90, 110)
            if placed is None:
                self._caption(c, x + 20, y + 55, "Passport Photo")
            elif not placed:
                self._caption(c, x + 35, y + 55, "Photo")
            y += 138

        if section.show_signature:
            self._box(c, x, y, 100, 50, stroke=cs.PRIMARY_COLOR, line_width=1.5)
            if not self._place_upload(c, "signature", x + 5, y + 5, 90, 40):
                self._caption(c, x + 15, y + 20, "Student Signature")

    def draw_declaration(self, c, y):
        y = self.ensure_room(c, y, DECLARATION_BREAK_AT)
        y += 10
        self._box(c, MARGIN, y, CONTENT_WIDTH, 75, stroke=cs.ACCENT_COLOR,
                  fill=cs.DECLARATION_FILL, line_width=1.5)
        y += 10
        self._text(c, 60, y, "DECLARATION", font="Helvetica-Bold", size=12, color=cs.PRIMARY_COLOR)
        y += 20

        paragraph = Paragraph(cs.DECLARATION_TEXT, DECLARATION_STYLE)
        _, height = paragraph.wrapOn(c, 475, 60)
        paragraph.drawOn(c, 60, PAGE_HEIGHT - y - height)
        return y + 80

    def draw_signatures(self, c, y):
        today = date.today()

        self._text(c, 60, y, "Date:", font="Helvetica-Bold", color=cs.PRIMARY_COLOR)
        self._box(c, 60, y + 15, 100, 25)
        c.setFont("Helvetica", 9)
        c.setFillColor(HexColor(cs.TEXT_COLOR))
        c.drawCentredString(110, PAGE_HEIGHT - y - 30, f"{today.day}/{today.month}/{today.year}")

        slots = [
            (180, "Student Signature", "signature"),
            (340, "Parent/Guardian Signature", "parentSignature"),
        ]
        for x, label, role in slots:
            self._text(c, x, y, f"{label}:", font="Helvetica-Bold", color=cs.PRIMARY_COLOR)
            self._box(c, x, y + 15, 140, 50, stroke=cs.PRIMARY_COLOR, line_width=1.5)
            if not self._place_upload(c, role, x + 10, y + 26, 125, 25):
                self._caption(c, x + 15, y + 35, label)

        return y + 80

    def draw_office_use(self, c, y):
        y = self.ensure_room(c, y, OFFICE_BREAK_AT)
        y = self.draw_section_header(c, y, "FOR OFFICE USE ONLY") + 5

        def label(x, text):
            self._text(c, x, y, text, font="Helvetica-Bold", color=cs.PRIMARY_COLOR)

        def checkbox(x, text):
            self._box(c, x, y - 3, 15, 15)
            self._text(c, x + 20, y, text, size=9)

        label(60, "Admission Number:")
        self._box(c, 180, y - 3, 150, 20)
        label(345, "Batch Allotted:")
        self._box(c, 450, y - 3, 95, 20)
        y += 35

        label(60, "Documents Verified:")
        checkbox(180, "Yes")
        checkbox(240, "No")
        y += 35

        label(60, "Admission Status:")
        checkbox(180, "Provisional")
        checkbox(280, "Confirmed")
        y += 40

        for left, right in (("Gross Course Fee:", "Registration Fee:"), ("Discount:", "Net Fee Payable:")):
            label(60, left)
            self._box(c, 180, y - 3, 150, 20)
            label(345, right)
            self._box(c, 465, y - 3, 80, 20)
            y += 30
        y += 10

        label(60, "Student Sign:")
        self._box(c, 60, y + 15, 150, 35)
        self._place_upload(c, "signature", 65, y + 20, 140, 28)

        # left blank for the office to date by hand
        label(230, "Date:")
        self._box(c, 230, y + 15, 150, 35)

        label(400, "Administrative Sign:")
        self._box(c, 400, y + 15, 145, 35)
        return y + 65

    def draw_footer_note(self, c, y):
        c.setFont("Helvetica-Oblique", 8)
        c.setFillColor(HexColor(cs.MUTED_COLOR))
        c.drawCentredString(PAGE_WIDTH / 2, PAGE_HEIGHT - y - 7, cs.FOOTER_NOTE)

    def append_image_pages(self, c):
        """Add one bare A4 page per uploaded document image."""
        added = 0
        for upload in self.uploaded_files:
            if not upload.is_image or upload.field_name in INLINE_IMAGE_ROLES:
                continue
            if not upload.exists():
                continue
            try:
                with Image.open(upload.path) as img:
                    image_width, image_height = img.size
            except OSError as exc:
                logger.error("Error adding image %s: %s", upload.original_name, exc)
                continue

            width, height, x, y = fit_to_page(image_width, image_height)
            c.showPage()
            try:
                c.drawImage(str(upload.path), x, y, width=width, height=height, mask="auto")
            except Exception as exc:
                logger.error("Error adding image %s: %s", upload.original_name, exc)
            added += 1
        return added


def generate_admission_pdf(form_data, uploaded_files=(), output_dir=None):
    """Render the admission form for one submission and return its path."""
    return AdmissionFormRenderer(form_data, uploaded_files, output_dir).render()
