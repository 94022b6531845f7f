"""Exercise the admission form renderer in :mod:`backend`."""

from __future__ import annotations

from pathlib import Path

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

import backend
import client_settings as cs
from backend import (
    build_sections,
    document_status,
    fit_to_page,
    generate_admission_pdf,
    parse_dgca_subjects,
)
from models import UploadedFile


def _page_count(path: Path) -> int:
    return len(PdfReader(str(path)).pages)


def _text(path: Path) -> str:
    return "\n".join(page.extract_text() or "" for page in PdfReader(str(path)).pages)


def _rows(form, uploads=()):
    return {section.title: dict(section.rows) for section in build_sections(form, uploads)}


def test_full_form_renders_single_pdf(tmp_path, full_form, inline_uploads):
    output_dir = tmp_path / "out" / "nested"
    pdf_path = generate_admission_pdf(full_form, inline_uploads, output_dir=output_dir)

    assert pdf_path.parent == output_dir
    assert pdf_path.name.startswith("admission-") and pdf_path.suffix == ".pdf"
    assert pdf_path.stat().st_size > 0
    assert list(output_dir.glob("*.pdf")) == [pdf_path]
    assert _page_count(pdf_path) >= 1

    text = _text(pdf_path)
    assert "STUDENT ADMISSION FORM" in text
    assert "Rahul Sharma" in text
    assert "FOR OFFICE USE ONLY" in text


def test_default_output_dir_comes_from_settings(full_form):
    pdf_path = generate_admission_pdf(full_form)
    assert pdf_path.parent == cs.OUTPUT_DIR
    assert pdf_path.exists()


def test_image_and_pdf_uploads_extend_page_count(full_form, inline_uploads, make_image, make_pdf):
    base = generate_admission_pdf(full_form, inline_uploads)
    base_pages = _page_count(base)

    uploads = inline_uploads + [
        UploadedFile("aadhar", make_image("aadhar.jpg", (1000, 630)), "image/jpeg", "aadhar.jpg"),
        UploadedFile("marksheet10", make_pdf("receipt-a.pdf", 2), "application/pdf", "receipt-a.pdf"),
        UploadedFile("marksheet12", make_pdf("receipt-b.pdf", 3), "application/pdf", "receipt-b.pdf"),
    ]
    merged = generate_admission_pdf(full_form, uploads)

    reader = PdfReader(str(merged))
    assert len(reader.pages) == base_pages + 1 + 2 + 3

    tail = [page.extract_text() for page in reader.pages[-5:]]
    assert "receipt-a page 1" in tail[0]
    assert "receipt-a page 2" in tail[1]
    assert "receipt-b page 1" in tail[2]
    assert "receipt-b page 3" in tail[4]


def test_inline_images_do_not_get_their_own_pages(full_form, inline_uploads):
    with_images = generate_admission_pdf(full_form, inline_uploads)
    without = generate_admission_pdf(full_form, [])
    assert _page_count(with_images) == _page_count(without)


def test_corrupt_uploaded_pdf_is_skipped(tmp_path, full_form, make_pdf):
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(b"this is not a pdf")
    base_pages = _page_count(generate_admission_pdf(full_form, []))

    uploads = [
        UploadedFile("marksheet10", broken, "application/pdf", "broken.pdf"),
        UploadedFile("marksheet12", make_pdf("good.pdf", 2), "application/pdf", "good.pdf"),
        UploadedFile("aadhar", tmp_path / "missing.pdf", "application/pdf", "missing.pdf"),
    ]
    pdf_path = generate_admission_pdf(full_form, uploads)

    assert _page_count(pdf_path) == base_pages + 2


def test_broken_images_fall_back_to_placeholders(tmp_path, full_form):
    garbage = tmp_path / "photo.png"
    garbage.write_bytes(b"\x89PNG not really")
    uploads = [
        UploadedFile("photo", garbage, "image/png", "photo.png"),
        UploadedFile("signature", tmp_path / "gone.png", "image/png", "gone.png"),
        UploadedFile("aadhar", garbage, "image/png", "aadhar.png"),
    ]
    base_pages = _page_count(generate_admission_pdf(full_form, []))

    pdf_path = generate_admission_pdf(full_form, uploads)

    assert _page_count(pdf_path) == base_pages
    text = _text(pdf_path)
    assert "Photo" in text
    assert "Student Signature" in text


def test_header_and_footer_artwork_is_drawn_when_present(monkeypatch, full_form, make_image):
    monkeypatch.setattr(cs, "HEADER_IMAGE", make_image("header.png", (1200, 140), "navy"))
    monkeypatch.setattr(cs, "FOOTER_IMAGE", make_image("footer.png", (1200, 80), "navy"))

    pdf_path = generate_admission_pdf(full_form, [])

    first_page = PdfReader(str(pdf_path)).pages[0]
    assert len(first_page.images) >= 2


def test_unwritable_output_dir_raises(tmp_path, full_form):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(OSError):
        generate_admission_pdf(full_form, [], output_dir=blocker / "out")


def test_long_forms_paginate(full_form):
    full_form["permanentAddress"] = "Flat 12, Sunrise Apartments, Linking Road, Bandra West " * 12
    full_form["currentAddress"] = full_form["permanentAddress"]
    full_form["dgcaSubjects"] = "Air Navigation, Meteorology, Air Regulations " * 10

    pdf_path = generate_admission_pdf(full_form, [])

    assert _page_count(pdf_path) >= 2
    assert "DECLARATION" in _text(pdf_path)


def test_unpaid_fees_omit_payment_rows(full_form):
    full_form["feesPaid"] = "No"
    fees = _rows(full_form)["5. FEE STATUS"]
    assert fees == {"Fees Paid": "No"}


def test_cash_payment_omits_transaction_id(full_form):
    full_form["paymentMode"] = "Cash"
    fees = _rows(full_form)["5. FEE STATUS"]

    assert fees["Mode of Payment"] == "Cash"
    assert fees["Installments"] == "1st Installment"
    assert "Transaction ID" not in fees

    text = _text(generate_admission_pdf(full_form, []))
    assert "Mode of Payment" in text
    assert "Transaction ID" not in text


def test_online_payment_keeps_transaction_id(full_form):
    fees = _rows(full_form)["5. FEE STATUS"]
    assert fees["Transaction ID"] == "TXN123456789"
    assert fees["Payment Date"] == "10-02-2026"


def test_class_12_stream_only_when_present(full_form):
    labels = [label for label, _ in build_sections(full_form, [])[2].rows]
    assert labels == ["School/College Name", "Current Qualification", "Class 12 Stream", "Board/University"]

    full_form["class12Stream"] = ""
    labels = [label for label, _ in build_sections(full_form, [])[2].rows]
    assert "Class 12 Stream" not in labels


def test_missing_values_render_placeholder():
    rows = _rows({"fullName": "Asha"})
    assert rows["1. STUDENT DETAILS"]["Full Name"] == "Asha"
    assert rows["1. STUDENT DETAILS"]["Email Address"] == "N/A"
    assert "Mode of Class" not in rows["4. COURSE DETAILS"]


def test_dgca_subjects_only_when_cleared(full_form):
    assert _rows(full_form)["6. AVIATION BACKGROUND"]["DGCA Subjects"] == "Air Navigation, Meteorology"

    full_form["dgcaPapersCleared"] = "No"
    assert "DGCA Subjects" not in _rows(full_form)["6. AVIATION BACKGROUND"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('["Air Navigation", "Meteorology"]', "Air Navigation, Meteorology"),
        ("Meteorology", "Meteorology"),
        ("[not json", "[not json"),
        (["RTR", "Technical General"], "RTR, Technical General"),
        ("5", "5"),
    ],
)
def test_parse_dgca_subjects(raw, expected):
    assert parse_dgca_subjects(raw) == expected


def test_document_status_requires_exact_role(full_form, tmp_path):
    uploads = [
        UploadedFile("aadhar", tmp_path / "a.jpg", "image/jpeg", "a.jpg"),
        UploadedFile("marksheet", tmp_path / "m.pdf", "application/pdf", "m.pdf"),
        UploadedFile("paymentReceipt", tmp_path / "r.pdf", "application/pdf", "r.pdf"),
    ]
    status = dict(document_status(full_form, uploads))

    assert status["Aadhaar Card"] == "Attached"
    assert status["10th Marksheet"] == "Not Attached"
    assert status["12th Marksheet"] == "Not Attached"
    assert status["Passport Size Photo"] == "Not Attached"
    assert status["Payment Receipt"] == "Attached"


def test_payment_receipt_listed_only_when_fees_paid(full_form):
    full_form["feesPaid"] = "No"
    labels = [label for label, _ in document_status(full_form, [])]
    assert "Payment Receipt" not in labels
    assert len(labels) == 6


def test_uploads_accept_plain_dicts(full_form, make_image):
    path = make_image("aadhar.png")
    uploads = [{"fieldname": "aadhar", "path": str(path), "mimetype": "image/png", "originalname": "aadhar.png"}]

    base_pages = _page_count(generate_admission_pdf(full_form, []))
    assert _page_count(generate_admission_pdf(full_form, uploads)) == base_pages + 1
    assert dict(document_status(full_form, backend.coerce_uploads(uploads)))["Aadhaar Card"] == "Attached"


def test_fit_to_page_letterboxes_wide_images():
    width, height, x, y = fit_to_page(2000, 1000)
    assert width == pytest.approx(backend.PAGE_WIDTH)
    assert height == pytest.approx(backend.PAGE_WIDTH / 2)
    assert x == 0
    assert y == pytest.approx((backend.PAGE_HEIGHT - height) / 2)


def test_fit_to_page_pillarboxes_tall_images():
    width, height, x, y = fit_to_page(500, 2000)
    assert height == pytest.approx(backend.PAGE_HEIGHT)
    assert width == pytest.approx(backend.PAGE_HEIGHT / 4)
    assert x == pytest.approx((backend.PAGE_WIDTH - width) / 2)
    assert y == 0


def test_pdf_failing_partway_is_skipped_whole(monkeypatch, full_form, make_pdf):
    base_pages = _page_count(generate_admission_pdf(full_form, []))
    add_page = PdfWriter.add_page

    def failing_add_page(self, page, *args, **kwargs):
        if "bad page 2" in (page.extract_text() or ""):
            raise PdfReadError("damaged page object")
        return add_page(self, page, *args, **kwargs)

    monkeypatch.setattr(PdfWriter, "add_page", failing_add_page)
    uploads = [
        UploadedFile("marksheet10", make_pdf("bad.pdf", 3), "application/pdf", "bad.pdf"),
        UploadedFile("marksheet12", make_pdf("good.pdf", 2), "application/pdf", "good.pdf"),
    ]
    pdf_path = generate_admission_pdf(full_form, uploads)

    assert _page_count(pdf_path) == base_pages + 2
    text = _text(pdf_path)
    assert "bad page 1" not in text
    assert "good page 2" in text


def test_unexpected_reader_error_skips_only_that_pdf(monkeypatch, full_form, make_pdf):
    base_pages = _page_count(generate_admission_pdf(full_form, []))
    broken = make_pdf("broken.pdf", 1)

    def reader(path, *args, **kwargs):
        if Path(path) == broken:
            raise AttributeError("'NullObject' object has no attribute 'get_object'")
        return PdfReader(path, *args, **kwargs)

    monkeypatch.setattr(backend, "PdfReader", reader)
    uploads = [
        UploadedFile("marksheet10", broken, "application/pdf", "broken.pdf"),
        UploadedFile("marksheet12", make_pdf("good.pdf", 2), "application/pdf", "good.pdf"),
    ]
    pdf_path = generate_admission_pdf(full_form, uploads)

    assert _page_count(pdf_path) == base_pages + 2


def test_office_block_ends_above_footer(tmp_path):
    renderer = backend.AdmissionFormRenderer({}, [], tmp_path)
    c = canvas.Canvas(str(tmp_path / "office.pdf"), pagesize=A4)

    end = renderer.draw_office_use(c, backend.OFFICE_BREAK_AT)
    assert c.getPageNumber() == 1
    assert end + 7 <= backend.FOOTER_TOP

    end = renderer.draw_office_use(c, backend.OFFICE_BREAK_AT + 1)
    assert c.getPageNumber() == 2
    assert end + 7 <= backend.FOOTER_TOP


def test_overflow_pages_repeat_header_and_footer(monkeypatch, full_form, make_image):
    monkeypatch.setattr(cs, "HEADER_IMAGE", make_image("header.png", (1200, 140), "navy"))
    monkeypatch.setattr(cs, "FOOTER_IMAGE", make_image("footer.png", (1200, 80), "maroon"))
    full_form["permanentAddress"] = "Flat 12, Sunrise Apartments, Linking Road, Bandra West " * 12
    full_form["currentAddress"] = full_form["permanentAddress"]
    full_form["dgcaSubjects"] = "Air Navigation, Meteorology, Air Regulations " * 10

    reader = PdfReader(str(generate_admission_pdf(full_form, [])))

    assert len(reader.pages) >= 2
    for page in reader.pages:
        assert len(page.images) >= 2
