import logging

from backend import generate_admission_pdf
from dispatcher import notify
from models import coerce_uploads

logger = logging.getLogger(__name__)


def process_submission(form_data, uploaded_files=(), output_dir=None, **notify_kwargs):
    """Render the admission form, then email it. Returns the PDF path.

    A render failure propagates before any email is attempted.
    """
    uploads = coerce_uploads(uploaded_files)
    pdf_path = generate_admission_pdf(form_data, uploads, output_dir=output_dir)
    logger.info("Rendered admission form for %s: %s", form_data.get("fullName") or "Student", pdf_path)

    notify(form_data, pdf_path, uploads, **notify_kwargs)
    return pdf_path
