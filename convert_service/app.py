"""
Convert Service - FastAPI application for HTML/Markdown conversion.

Provides the conversion endpoint (HTML or Markdown in, PDF or DOCX out),
a Markdown preview endpoint, diagnostic/health endpoints and the editor UI.
"""

import logging
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Callable, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from io import BytesIO
from pydantic import BaseModel, Field

from . import __version__
from .config import ConvertSettings, get_settings, validate_config_on_startup
from .errors import ConversionError, ConvertServiceError, ValidationError
from .exporter import OutputFormat, export_document
from .preprocess import resolve_input, to_html
from .renderer import RendererSession, check_browser, launch_options_from_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_level: str) -> None:
    """Configure root logging at LOG_LEVEL (also when handlers already exist)."""
    logging.basicConfig(level=log_level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    logging.getLogger().setLevel(log_level)


# Configure logging
configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

app = FastAPI(
    title="Convert Service",
    version=__version__,
    description="Convert HTML or Markdown to PDF (Playwright/Chromium) or DOCX (pandoc)"
)

_cors_origins = get_settings().cors_origins_list
if _cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

# Browser readiness state
_browser_ready = False
_browser_error: Optional[str] = None


# ============================================================================
# Startup Event - Validate configuration and browser
# ============================================================================

@app.on_event("startup")
async def validate_on_startup():
    """
    Validate configuration, then check Chromium can actually print a page.

    The service reports unhealthy (503) if the browser probe fails.
    """
    global _browser_ready, _browser_error

    settings = validate_config_on_startup()
    configure_logging(settings.log_level)

    if not settings.validate_browser_on_startup:
        logger.info("Browser validation on startup disabled")
        _browser_ready = True
        _browser_error = None
        return

    logger.info("Convert Service starting - validating Chromium installation...")
    _browser_ready, _browser_error = await check_browser(launch_options_from_settings(settings))

    if _browser_ready:
        logger.info("✅ Browser validation successful")
    else:
        logger.error(f"❌ Browser validation failed: {_browser_error}")
        logger.error("PDF generation will not work until this is resolved.")


# ============================================================================
# Dependencies
# ============================================================================

def get_session_factory(
    settings: ConvertSettings = Depends(get_settings),
) -> Callable[[], RendererSession]:
    """Build a factory producing one fresh RendererSession per call."""
    return partial(RendererSession, launch_options_from_settings(settings))


# ============================================================================
# Request/Response Models
# ============================================================================

class ConvertRequest(BaseModel):
    """HTML or Markdown to PDF/DOCX request."""
    html: Optional[str] = Field(None, description="HTML content to convert")
    markdown: Optional[str] = Field(None, description="Markdown content to convert")
    outputFormat: Optional[Any] = Field(None, description="'pdf' (default) or 'docx'")
    filename: Optional[str] = Field(None, description="Download filename without extension")


class PreviewRequest(BaseModel):
    """HTML or Markdown preview request."""
    html: Optional[str] = Field(None, description="HTML content")
    markdown: Optional[str] = Field(None, description="Markdown content")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime
    environment: str
    browser_ready: bool = True
    browser_error: Optional[str] = None


# ============================================================================
# Error Responses
# ============================================================================

def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _error_response(
    error: ConvertServiceError,
    settings: ConvertSettings,
    summary: Optional[str] = None,
) -> JSONResponse:
    """Map a conversion error to its JSON response."""
    if isinstance(error, ValidationError):
        return _bad_request(error.message)

    return JSONResponse(
        status_code=error.status_code,
        content={
            "error": summary or error.message,
            "details": error.details(include_stack=not settings.is_production),
        },
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Answer malformed request bodies with 400 instead of FastAPI's 422."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning(f"Invalid request body for {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": errors},
    )


# ============================================================================
# Conversion Endpoints
# ============================================================================

async def _handle_conversion(
    request: ConvertRequest,
    settings: ConvertSettings,
    session_factory: Callable[[], RendererSession],
    output_format: OutputFormat,
):
    """Validate, preprocess, export and build the HTTP response."""
    try:
        input_kind, input_text = resolve_input(request.html, request.markdown)
    except ValidationError as e:
        logger.info(f"Rejected conversion request: {e.message}")
        return _bad_request(e.message)

    logger.info(
        f"Received conversion request (input={input_kind.value}, "
        f"length={len(input_text)}, format={output_format.value})"
    )

    try:
        html = to_html(input_kind, input_text)
    except ConvertServiceError as e:
        return _error_response(e, settings)

    summary = f"Failed to generate {output_format.value.upper()}"
    try:
        document = await export_document(
            html,
            output_format,
            session_factory,
            filename_stem=request.filename,
        )
    except ConvertServiceError as e:
        logger.error(f"*** {summary} *** {e.error_name}: {e.error_message}")
        return _error_response(e, settings, summary)
    except Exception as e:
        logger.exception(f"*** {summary} *** unexpected error")
        return _error_response(ConversionError.wrap(e, summary), settings, summary)

    logger.info(f"Returning {document.filename} ({len(document.content)} bytes)")
    return StreamingResponse(
        BytesIO(document.content),
        media_type=document.media_type,
        headers=document.headers(),
    )


@app.post("/convert")
async def convert(
    request: Optional[ConvertRequest] = None,
    settings: ConvertSettings = Depends(get_settings),
    session_factory: Callable[[], RendererSession] = Depends(get_session_factory),
):
    """
    Convert HTML or Markdown to PDF or DOCX.

    Args:
        request: Exactly one of html/markdown, optional outputFormat and filename

    Returns:
        StreamingResponse with the document bytes; 400 JSON for missing or
        conflicting input, 500 JSON for renderer/converter failures
    """
    request = request or ConvertRequest()
    output_format = OutputFormat.parse(request.outputFormat)
    return await _handle_conversion(request, settings, session_factory, output_format)


@app.post("/generate-pdf")
async def generate_pdf(
    request: Optional[ConvertRequest] = None,
    settings: ConvertSettings = Depends(get_settings),
    session_factory: Callable[[], RendererSession] = Depends(get_session_factory),
):
    """Earlier HTML-to-PDF route; always renders PDF."""
    request = request or ConvertRequest()
    return await _handle_conversion(request, settings, session_factory, OutputFormat.PDF)


@app.post("/preview")
async def preview(
    request: Optional[PreviewRequest] = None,
    settings: ConvertSettings = Depends(get_settings),
):
    """Return the HTML the exporter would receive (no browser involved)."""
    request = request or PreviewRequest()
    try:
        input_kind, input_text = resolve_input(request.html, request.markdown)
        return {"html": to_html(input_kind, input_text)}
    except ConvertServiceError as e:
        return _error_response(e, settings)


# ============================================================================
# Diagnostic Endpoints
# ============================================================================

@app.post("/test")
async def test_post(request: Request):
    """Echo the parsed JSON body (connectivity check)."""
    try:
        body = await request.json()
    except Exception as e:
        logger.error(f"Error in /test: {e}")
        return JSONResponse(
            status_code=400,
            content={
                "message": "API Test endpoint reached, but failed to parse request body.",
                "error": str(e),
            },
        )

    return {
        "message": "API Test endpoint reached successfully!",
        "receivedData": body,
    }


@app.get("/test")
async def test_get():
    """Liveness confirmation for browser-based checks."""
    return {"message": "API Test endpoint is alive (GET request)!"}


@app.get("/health", response_model=HealthResponse)
async def health_check(settings: ConvertSettings = Depends(get_settings)) -> HealthResponse:
    """
    Health check endpoint for container orchestration.

    Returns HTTP 503 if the browser probe failed on startup.
    """
    if not _browser_ready:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "environment": settings.environment,
                "browser_ready": False,
                "browser_error": _browser_error,
                "message": "Convert service is unhealthy - Chromium not available"
            }
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        environment=settings.environment,
        browser_ready=True,
        browser_error=None
    )


# ============================================================================
# Client UI
# ============================================================================

@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the editor/preview page."""
    return HTMLResponse((TEMPLATE_DIR / "index.html").read_text(encoding="utf-8"))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("convert_service.app:app", host="0.0.0.0", port=8001)
