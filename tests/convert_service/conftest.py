"""
Pytest fixtures for convert service tests.
"""

import os
from unittest.mock import AsyncMock, MagicMock, patch

# IMPORTANT: Set environment variables BEFORE any imports from convert_service
# so the cached ConvertSettings is built from them.
os.environ["ENVIRONMENT"] = "development"
os.environ["VALIDATE_BROWSER_ON_STARTUP"] = "false"
os.environ.pop("CHROMIUM_EXECUTABLE_PATH", None)
os.environ.pop("CORS_ORIGINS", None)

import pytest
from fastapi.testclient import TestClient

FAKE_PDF = b"%PDF-1.4 fake pdf content"


class FakePlaywright:
    """
    Stand-in for ``async_playwright`` that never starts a browser.

    ``factory`` replaces ``async_playwright``; ``driver``, ``browser`` and
    ``page`` expose the AsyncMocks so tests can count launches and closes.
    """

    def __init__(self, pdf_bytes: bytes = FAKE_PDF):
        self.page = AsyncMock()
        self.page.set_default_timeout = MagicMock()
        self.page.pdf = AsyncMock(return_value=pdf_bytes)

        self.browser = AsyncMock()
        self.browser.new_page = AsyncMock(return_value=self.page)

        self.driver = MagicMock()
        self.driver.chromium.launch = AsyncMock(return_value=self.browser)
        self.driver.stop = AsyncMock()

        self.context_manager = MagicMock()
        self.context_manager.start = AsyncMock(return_value=self.driver)
        self.factory = MagicMock(return_value=self.context_manager)

    @property
    def launch(self) -> AsyncMock:
        return self.driver.chromium.launch

    @property
    def close_count(self) -> int:
        return self.browser.close.await_count

    @property
    def rendered_html(self) -> str:
        """HTML passed to the last ``page.set_content`` call."""
        return self.page.set_content.await_args.args[0]


@pytest.fixture
def fake_playwright():
    """Fake Playwright driver (not patched in; pass ``.factory`` explicitly)."""
    return FakePlaywright()


@pytest.fixture
def patched_playwright(fake_playwright):
    """Patch the renderer's ``async_playwright`` with the fake driver."""
    with patch("convert_service.renderer.async_playwright", fake_playwright.factory):
        yield fake_playwright


@pytest.fixture
def client():
    """Create test client with the browser marked as ready."""
    import convert_service.app as app_module
    app_module._browser_ready = True
    app_module._browser_error = None
    app_module.app.dependency_overrides.clear()
    yield TestClient(app_module.app)
    app_module.app.dependency_overrides.clear()


@pytest.fixture
def client_browser_unavailable():
    """Create test client with the browser marked as unavailable."""
    import convert_service.app as app_module
    app_module._browser_ready = False
    app_module._browser_error = "Test: Chromium not available"
    return TestClient(app_module.app)


@pytest.fixture
def production_client(client):
    """Test client whose requests see production settings."""
    from convert_service.app import app
    from convert_service.config import ConvertSettings, get_settings

    app.dependency_overrides[get_settings] = lambda: ConvertSettings(
        environment="production", _env_file=None
    )
    return client
