from __future__ import annotations

import json
from pathlib import Path

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

import client_settings as cs
import dispatcher
from models import UploadedFile


@pytest.fixture(autouse=True)
def _isolate(tmp_path, monkeypatch):
    """Keep page artwork and the Brevo singleton out of every test."""
    monkeypatch.setattr(cs, "HEADER_IMAGE", tmp_path / "missing-header.png")
    monkeypatch.setattr(cs, "FOOTER_IMAGE", tmp_path / "missing-footer.png")
    monkeypatch.setattr(cs, "OUTPUT_DIR", tmp_path / "uploads")
    for name in ("BREVO_API_KEY", "MAIL_FROM", "ADMIN_EMAIL", "MAIL_FROM_NAME"):
        monkeypatch.delenv(name, raising=False)
    dispatcher.reset_brevo_client()
    yield
    dispatcher.reset_brevo_client()


@pytest.fixture
def full_form() -> dict:
    return {
        "fullName": "Rahul Sharma",
        "dob": "15-08-2000",
        "gender": "Male",
        "mobile": "9876543210",
        "email": "rahul@example.com",
        "permanentAddress": "123 MG Road, Mumbai, Maharashtra",
        "currentAddress": "456 Andheri West, Mumbai",
        "dgca": "DGCA123456",
        "egca": "EGCA78910",
        "medical": "Class 2 Valid",
        "parentName": "Rajesh Sharma",
        "relationship": "Father",
        "parentMobile": "9123456789",
        "occupation": "Businessman",
        "school": "St. Xavier's College",
        "classYear": "12th Pass",
        "board": "CBSE",
        "class12Stream": "Science",
        "course": "CPL Ground Classes",
        "modeOfClass": "Offline",
        "feesPaid": "Yes",
        "paymentMode": "Online",
        "installment": "1st Installment",
        "transactionId": "TXN123456789",
        "paymentDate": "10-02-2026",
        "previousFlyingExperience": "No",
        "dgcaPapersCleared": "Yes",
        "dgcaSubjects": json.dumps(["Air Navigation", "Meteorology"]),
    }


@pytest.fixture
def make_image(tmp_path):
    def _make(name: str, size=(200, 100), color="white") -> Path:
        path = tmp_path / name
        Image.new("RGB", size, color).save(path)
        return path

    return _make


@pytest.fixture
def make_pdf(tmp_path):
    def _make(name: str, pages: int) -> Path:
        path = tmp_path / name
        c = canvas.Canvas(str(path), pagesize=A4)
        for number in range(1, pages + 1):
            c.drawString(72, 750, f"{path.stem} page {number}")
            c.showPage()
        c.save()
        return path

    return _make


@pytest.fixture
def inline_uploads(make_image) -> list[UploadedFile]:
    return [
        UploadedFile("photo", make_image("photo.jpg", (350, 450), "lightblue"), "image/jpeg", "photo.jpg"),
        UploadedFile("signature", make_image("signature.png", (300, 100)), "image/png", "signature.png"),
        UploadedFile(
            "parentSignature", make_image("parent-signature.png", (300, 100)), "image/png", "parent-signature.png"
        ),
    ]
