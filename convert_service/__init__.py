"""
Convert Service - HTML/Markdown to PDF and DOCX conversion.

This service accepts HTML or Markdown text over HTTP and returns a PDF
(rendered by a request-scoped headless Chromium via Playwright) or a DOCX
document (converted by pandoc).
"""

__version__ = "0.1.0"
