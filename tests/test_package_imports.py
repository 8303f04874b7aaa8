"""
Verify package imports work correctly.

These tests ensure the package is properly installed and modules
can be imported. Critical for catching setup.py/installation issues
in CI environments.
"""

from pathlib import Path


def test_convert_service_package_structure():
    """Verify convert_service package is importable."""
    import importlib
    spec = importlib.util.find_spec('convert_service')
    assert spec is not None, "convert_service should be importable (package must be installed)"


def test_pipeline_modules_can_be_imported():
    """Verify the conversion pathway modules import with their public API."""
    from convert_service.preprocess import resolve_input, to_html
    from convert_service.exporter import export_document, OutputFormat
    from convert_service.renderer import RendererSession, launch_options_from_settings
    assert callable(resolve_input)
    assert callable(to_html)
    assert callable(export_document)
    assert callable(launch_options_from_settings)
    assert OutputFormat.PDF.value == "pdf"
    assert RendererSession is not None


def test_convert_service_app_can_be_imported():
    """Verify convert service FastAPI app can be imported."""
    from convert_service.app import app, TEMPLATE_DIR
    assert app is not None
    assert hasattr(app, 'routes')
    assert (Path(TEMPLATE_DIR) / "index.html").exists()
