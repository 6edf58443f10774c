"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def reset_engine_settings():
    """
    Reload ORDER_ENGINE after each test.

    CRITICAL: override_settings reloads the lazy settings on entry and exit,
    but a test that pokes engine_settings directly must not leak into the next.
    """
    from orders.conf import engine_settings

    engine_settings.reload()
    yield
    engine_settings.reload()


@pytest.fixture(autouse=True)
def reset_event_subscribers():
    """Drop in-process event subscribers registered by a test."""
    from orders.services import OrderEventPublisher

    saved = list(OrderEventPublisher._subscribers)
    yield
    OrderEventPublisher._subscribers[:] = saved


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/orders/')
            assert response.status_code == 200
    """
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def staff_client(api_client):
    """API client identifying itself as a staff terminal via headers."""
    api_client.credentials(HTTP_X_STAFF_ID="staff-1", HTTP_X_STAFF_NAME="Alice")
    return api_client
