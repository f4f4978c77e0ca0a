import os

from .exceptions import ValidationError

ALLOWED_EXTENSIONS = {"pdf", "doc", "docx", "txt", "jpg", "jpeg", "png"}
DEFAULT_MAX_SIZE = 10 * 1024 * 1024


class DocumentUploadForm:
    """Validates an uploaded file before anything is written to disk."""

    def __init__(self, original_name, content, encrypt=False, max_size=DEFAULT_MAX_SIZE):
        self.original_name = original_name
        self.content = content
        self.encrypt = encrypt
        self.max_size = max_size
        self.errors = []

    def is_valid(self):
        self.errors = []
        name = os.path.basename(self.original_name or "")
        if not name:
            self.errors.append("No file was provided")
        else:
            extension = os.path.splitext(name)[1].lower().lstrip(".")
            if extension not in ALLOWED_EXTENSIONS:
                self.errors.append("File type not allowed")
        if self.content is None:
            self.errors.append("File content is missing")
        elif len(self.content) > self.max_size:
            self.errors.append(f"File exceeds the {self.max_size} byte limit")
        return not self.errors

    @property
    def cleaned_name(self):
        return os.path.basename(self.original_name or "")

    def validate(self):
        if not self.is_valid():
            raise ValidationError("; ".join(self.errors))
        return self


def parse_flag(value):
    """Interpret a form field such as ``encrypt=true``."""
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")
