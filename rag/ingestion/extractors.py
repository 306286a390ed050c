"""
Raw text extraction from PDF, Word, Markdown and plain-text files.
"""

import logging
from pathlib import Path

from ..exceptions import UnsupportedTypeError

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = {
    ".pdf": "pdf",
    ".docx": "docx",
    ".txt": "txt",
    ".md": "md",
}


def detect_content_type(filename: str) -> str:
    """
    Map a file name to one of the supported content types.

    Raises:
        UnsupportedTypeError: If the extension is not supported.
    """
    extension = Path(filename).suffix.lower()
    content_type = SUPPORTED_TYPES.get(extension)
    if content_type is None:
        raise UnsupportedTypeError(f"File type {extension or '(none)'} is not supported")
    return content_type


def extract_text(file_path: Path, content_type: str) -> str:
    """
    Extract the raw text of a file.

    Args:
        file_path: File to read.
        content_type: One of 'pdf', 'docx', 'txt', 'md'.

    Returns:
        Extracted text (may be empty).

    Raises:
        UnsupportedTypeError: For any other content type.
    """
    if content_type == "pdf":
        return _extract_pdf(file_path)
    if content_type == "docx":
        return _extract_docx(file_path)
    if content_type in ("txt", "md"):
        # Markdown is kept as-is; the markup is harmless for retrieval.
        return file_path.read_text(encoding="utf-8", errors="replace")
    raise UnsupportedTypeError(f"File type {content_type} is not supported")


def _extract_pdf(pdf_path: Path) -> str:
    """Extract PDF text using PyMuPDF, with pdfplumber as fallback."""
    try:
        import fitz  # PyMuPDF

        pages = []
        with fitz.open(str(pdf_path)) as doc:
            for page in doc:
                pages.append(page.get_text("text"))
        return "\n".join(pages)

    except Exception as e:
        logger.error(f"Error extracting PDF with PyMuPDF: {e}")
        return _extract_pdf_with_pdfplumber(pdf_path)


def _extract_pdf_with_pdfplumber(pdf_path: Path) -> str:
    """Extract text using pdfplumber (better for tables)."""
    import pdfplumber

    pages = []
    with pdfplumber.open(str(pdf_path)) as pdf:
        for page in pdf.pages:
            text = page.extract_text() or ""

            for table in page.extract_tables() or []:
                table_text = _format_table(table)
                if table_text:
                    text += "\n\n" + table_text

            pages.append(text)

    return "\n".join(pages)


def _format_table(table: list) -> str:
    """Format a table as text."""
    rows = []
    for row in table:
        if row:
            cells = [str(cell) if cell else "" for cell in row]
            rows.append(" | ".join(cells))
    return "\n".join(rows)


def _extract_docx(docx_path: Path) -> str:
    """Extract paragraph text from a Word document."""
    from docx import Document

    document = Document(str(docx_path))
    return "\n".join(p.text for p in document.paragraphs)
