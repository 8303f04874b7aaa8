"""
Document preprocessing: turn the request's HTML or Markdown into one HTML string.

HTML input is passed through untouched (no sanitization; callers are trusted).
Markdown input is converted with the ``markdown`` library.
"""

import logging
from enum import Enum
from typing import Optional, Tuple

import markdown

from .errors import ConversionError, ValidationError

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]

MISSING_INPUT_MESSAGE = "HTML or Markdown content is required"
AMBIGUOUS_INPUT_MESSAGE = "Provide either HTML or Markdown content, not both"


class InputKind(str, Enum):
    """Declared kind of the request's text input."""

    HTML = "html"
    MARKDOWN = "markdown"


def _supplied(value: Optional[str]) -> bool:
    return isinstance(value, str) and value != ""


def resolve_input(html: Optional[str], markdown_text: Optional[str]) -> Tuple[InputKind, str]:
    """
    Pick the single populated input field.

    Args:
        html: Raw HTML from the request body (may be None)
        markdown_text: Raw Markdown from the request body (may be None)

    Returns:
        (input kind, text)

    Raises:
        ValidationError: neither or both fields are populated
    """
    has_html = _supplied(html)
    has_markdown = _supplied(markdown_text)

    if has_html and has_markdown:
        raise ValidationError(AMBIGUOUS_INPUT_MESSAGE)
    if has_html:
        return InputKind.HTML, html
    if has_markdown:
        return InputKind.MARKDOWN, markdown_text
    raise ValidationError(MISSING_INPUT_MESSAGE)


def markdown_to_html(text: str) -> str:
    """Convert Markdown to an HTML fragment."""
    try:
        return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)
    except Exception as e:
        logger.error(f"Markdown conversion failed: {type(e).__name__}: {e}")
        raise ConversionError.wrap(e, "Markdown conversion failed")


def to_html(input_kind: InputKind, input_text: str) -> str:
    """
    Produce the HTML handed to the exporter.

    Args:
        input_kind: InputKind.HTML or InputKind.MARKDOWN
        input_text: Non-empty input text

    Returns:
        HTML string

    Raises:
        ValidationError: empty text or unknown input kind
        ConversionError: the Markdown converter failed
    """
    if not _supplied(input_text):
        raise ValidationError(MISSING_INPUT_MESSAGE)

    if input_kind == InputKind.MARKDOWN:
        html = markdown_to_html(input_text)
        logger.info(f"Converted Markdown ({len(input_text)} chars) to HTML ({len(html)} chars)")
        return html
    if input_kind == InputKind.HTML:
        return input_text

    raise ValidationError(f"Unsupported input kind: {input_kind}")
