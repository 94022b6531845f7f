"""Render an admission form from literal sample data.

    python sample_submission.py            # writes the PDF and prints its path
    python sample_submission.py --send     # also emails it (needs BREVO_* env)
"""
import argparse
import json
import logging
from pathlib import Path

from PIL import Image, ImageDraw
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from backend import generate_admission_pdf
from dispatcher import notify

SAMPLE_DIR = Path(__file__).resolve().parent / "sample-files"

SAMPLE_FORM = {
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


def _make_image(path, size, color, text):
    img = Image.new("RGB", size, color)
    ImageDraw.Draw(img).text((10, size[1] // 2), text, fill="black")
    img.save(path)


def _make_pdf(path, pages):
    c = canvas.Canvas(str(path), pagesize=A4)
    for number in range(1, pages + 1):
        c.drawString(72, 750, f"Payment receipt - page {number}")
        c.showPage()
    c.save()


def sample_uploads(sample_dir=None):
    """Create the sample files if needed and describe them like the upload layer does."""
    sample_dir = Path(sample_dir or SAMPLE_DIR)
    sample_dir.mkdir(parents=True, exist_ok=True)
    files = [
        ("photo", "photo.jpg", "image/jpeg", (350, 450), "lightblue"),
        ("signature", "signature.png", "image/png", (300, 100), "white"),
        ("parentSignature", "parent-signature.png", "image/png", (300, 100), "white"),
        ("aadhar", "aadhar.jpg", "image/jpeg", (1000, 630), "lightyellow"),
    ]
    uploads = []
    for role, name, mimetype, size, color in files:
        path = sample_dir / name
        if not path.exists():
            _make_image(path, size, color, role)
        uploads.append({"fieldname": role, "path": str(path), "mimetype": mimetype, "originalname": name})

    receipt = sample_dir / "receipt.pdf"
    if not receipt.exists():
        _make_pdf(receipt, 2)
    uploads.append({"fieldname": "paymentReceipt", "path": str(receipt),
                    "mimetype": "application/pdf", "originalname": "receipt.pdf"})
    return uploads


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--send", action="store_true", help="email the generated form")
    parser.add_argument("--output-dir", type=Path, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    uploads = sample_uploads()
    pdf_path = generate_admission_pdf(SAMPLE_FORM, uploads, output_dir=args.output_dir)
    print(f"Test PDF generated: {pdf_path}")

    if args.send:
        notify(SAMPLE_FORM, pdf_path, uploads)
        print("Emails sent")
    return pdf_path


if __name__ == "__main__":
    main()
