import io
import re

from pdfminer.high_level import extract_text as pdf_extract

from jobconnect.models.models import ExtractedText
from jobconnect.utils.exceptions import InvalidDocument
from jobconnect.utils.logging_config import get_logger

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF"
DEFAULT_MAX_CHARS = 3000

# Parsable document without any extractable characters (e.g. a scanned image)
NO_READABLE_TEXT = ExtractedText(text="", readable=False, truncated=False)


def clean_text(x: str) -> str:
    x = re.sub(r'\s+', ' ', x).strip()
    return x


def check_pdf_signature(data: bytes, filename: str = None) -> None:
    if not data:
        raise InvalidDocument("Invalid or empty PDF file!", document_name=filename)
    if not data.startswith(PDF_MAGIC):
        raise InvalidDocument("Invalid PDF file format!", document_name=filename)


def read_pdf_bytes(data: bytes) -> str:
    return pdf_extract(io.BytesIO(data))


def extract_resume_text(data: bytes, max_chars: int = DEFAULT_MAX_CHARS, filename: str = None) -> ExtractedText:
    """Extract plain text from an in-memory PDF resume.

    Raises InvalidDocument before parsing when the buffer is empty or lacks the
    PDF signature, and when pdfminer cannot parse the body. Returns
    NO_READABLE_TEXT when parsing succeeds but yields no characters.
    """
    check_pdf_signature(data, filename)

    try:
        raw = read_pdf_bytes(data)
    except Exception as e:
        logger.warning(f"PDF parsing failed for {filename or '<upload>'}: {e}")
        raise InvalidDocument(
            "Invalid PDF file. Please ensure the file is a valid PDF document.",
            document_name=filename,
            cause=e
        ) from e

    text = clean_text(raw or "")
    if not text:
        logger.info(f"No readable text in {filename or '<upload>'}")
        return NO_READABLE_TEXT

    truncated = len(text) > max_chars
    return ExtractedText(text=text[:max_chars], readable=True, truncated=truncated)
