"""Plain-text extraction from PDF bytes using pypdf."""

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from invoicedesk.shared.errors import ExtractionError

logger = logging.getLogger(__name__)


def extract_pdf_text(data: bytes) -> str:
    """Concatenate the text layer of every page.

    Scanned PDFs without a text layer yield an empty string; the model then
    sees no document text and the normalizer fills in defaults.

    Args:
        data: PDF file content

    Returns:
        Page texts joined by newlines

    Raises:
        ExtractionError: If the bytes are not a readable PDF
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PdfReadError, ValueError) as e:
        logger.warning(f"Could not read PDF: {e}")
        raise ExtractionError(f"Could not read PDF content: {e}") from e

    text = "\n".join(pages).replace("\xa0", " ").strip()
    logger.debug(f"Extracted {len(text)} characters from {len(pages)} page(s)")
    return text
