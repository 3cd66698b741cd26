"""PDF text extraction using pdfplumber."""

import asyncio
from io import BytesIO

import pdfplumber

from grindflow.core.exceptions import TextExtractionError
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Extract the text of every page, pages separated by newlines.

    Args:
        pdf_bytes: Raw PDF content

    Returns:
        Extracted text, empty for image-only PDFs

    Raises:
        TextExtractionError: If the bytes cannot be parsed as a PDF
    """
    try:
        with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        LOGGER.error(f"PDF parsing failed: {e}", exc_info=True)
        raise TextExtractionError(f"PDF parsing failed: {e}", original_error=e) from e

    LOGGER.info(f"Extracted text from {len(pages)} pages")
    return "\n".join(pages)


async def extract_pdf_text_async(pdf_bytes: bytes) -> str:
    """Run extract_pdf_text in a worker thread so the event loop stays free."""
    return await asyncio.to_thread(extract_pdf_text, pdf_bytes)
