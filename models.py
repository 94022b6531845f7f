from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

# Submitted form fields, keyed by the names the intake form posts
ApplicantForm = Mapping[str, Optional[str]]

PDF_MIMETYPE = "application/pdf"


@dataclass(frozen=True)
class UploadedFile:
    """One uploaded document. The upload layer owns the file on disk."""

    field_name: str
    path: Path
    mimetype: str
    original_name: str = ""

    @classmethod
    def from_dict(cls, data):
        return cls(
            field_name=data["fieldname"],
            path=Path(data["path"]),
            mimetype=data.get("mimetype") or "",
            original_name=data.get("originalname") or Path(data["path"]).name,
        )

    @property
    def is_image(self):
        return self.mimetype.startswith("image/")

    @property
    def is_pdf(self):
        return self.mimetype == PDF_MIMETYPE

    def exists(self):
        return self.path.is_file()


def coerce_uploads(uploaded_files):
    """Accept UploadedFile objects or the upload layer's plain dicts."""
    uploads = []
    for item in uploaded_files or ():
        if isinstance(item, UploadedFile):
            uploads.append(item)
        else:
            uploads.append(UploadedFile.from_dict(item))
    return uploads
