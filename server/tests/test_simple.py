"""Simple test to verify pytest setup."""

from tourbook import __version__


def test_version():
    assert __version__ == "1.0.0"


def test_import_app():
    """Test that we can import the app module and every RPC route is mounted."""
    from tourbook.main import create_app
    app = create_app()
    paths = {route.path for route in app.routes}

    for path in (
        "/v1/booking/create",
        "/v1/booking/confirm",
        "/v1/booking/cancel",
        "/v1/booking/update-status",
        "/v1/availability/check",
        "/v1/payment/webhook",
    ):
        assert path in paths
