"""
Document export: dispatch HTML to the PDF renderer or the DOCX converter.

PDF output goes through a request-scoped RendererSession; DOCX output goes
through pandoc (via pypandoc) and never touches a browser.
"""

import asyncio
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import pypandoc

from .errors import ConversionError, ConvertServiceError
from .renderer import RendererSession

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DEFAULT_FILENAME_STEM = "document"


class OutputFormat(str, Enum):
    """Requested output document format."""

    PDF = "pdf"
    DOCX = "docx"

    @classmethod
    def parse(cls, value: Optional[str]) -> "OutputFormat":
        """
        Parse a client-supplied format; absent or unrecognized values mean PDF.
        """
        if value is None:
            return cls.PDF
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        logger.warning(f"Unrecognized output format {value!r}, defaulting to pdf")
        return cls.PDF


@dataclass
class RenderedDocument:
    """A finished document ready to be returned to the client."""

    content: bytes
    media_type: str
    filename: str
    disposition: str

    @property
    def content_disposition(self) -> str:
        return f'{self.disposition}; filename="{self.filename}"'

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Disposition": self.content_disposition,
            "Content-Length": str(len(self.content)),
        }


def sanitize_filename_stem(text: Optional[str]) -> str:
    """
    Sanitize a client-supplied filename stem.

    Anything outside ASCII letters, digits, hyphens and underscores becomes
    an underscore (header values are latin-1), runs of underscores collapse,
    and leading/trailing underscores are stripped.

    Example:
        >>> sanitize_filename_stem("Q3 Report (final)")
        "Q3_Report_final"
    """
    if not text:
        return DEFAULT_FILENAME_STEM
    cleaned = re.sub(r"[^A-Za-z0-9_-]", "_", text)
    cleaned = re.sub(r"_+", "_", cleaned).strip("_")
    return cleaned or DEFAULT_FILENAME_STEM


def html_to_docx(html: str) -> bytes:
    """
    Convert HTML to DOCX bytes with pandoc.

    pandoc writes binary formats only to files, so the output goes through
    a temporary file that is removed afterwards.
    """
    fd, path = tempfile.mkstemp(suffix=".docx", prefix="convert_")
    os.close(fd)
    try:
        pypandoc.convert_text(html, "docx", format="html", outputfile=path)
        with open(path, "rb") as f:
            return f.read()
    finally:
        os.remove(path)


async def export_document(
    html: str,
    output_format: OutputFormat,
    session_factory: Callable[[], RendererSession],
    filename_stem: Optional[str] = None,
) -> RenderedDocument:
    """
    Convert HTML to the requested output format.

    Args:
        html: HTML produced by the preprocessor
        output_format: OutputFormat.PDF or OutputFormat.DOCX
        session_factory: Builds a new, unopened RendererSession (PDF only)
        filename_stem: Optional client filename without extension

    Returns:
        RenderedDocument with bytes, media type and filename

    Raises:
        LaunchError: browser failed to start (PDF)
        RenderTimeoutError: page never settled (PDF)
        ConversionError: any other converter failure
    """
    stem = sanitize_filename_stem(filename_stem)

    try:
        if output_format == OutputFormat.DOCX:
            logger.info(f"Converting HTML ({len(html)} chars) to DOCX")
            content = await asyncio.to_thread(html_to_docx, html)
            logger.info(f"DOCX generated, size: {len(content)}")
            return RenderedDocument(
                content=content,
                media_type=DOCX_MEDIA_TYPE,
                filename=f"{stem}.docx",
                disposition="attachment",
            )

        async with session_factory() as session:
            content = await session.render_pdf(html)
        return RenderedDocument(
            content=content,
            media_type=PDF_MEDIA_TYPE,
            filename=f"{stem}.pdf",
            disposition="inline",
        )

    except ConvertServiceError:
        raise
    except Exception as e:
        logger.error(f"{output_format.value.upper()} conversion failed: {type(e).__name__}: {e}")
        raise ConversionError.wrap(e, f"Failed to generate {output_format.value.upper()}") from e
