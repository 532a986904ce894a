"""
Test configuration and fixtures for the Mall Audit AI API.

Environment is pinned before any app module is imported so that settings,
the log directory and the screenshot directory point at throwaway paths.
"""

import os
import tempfile
from typing import Generator

_test_root = tempfile.mkdtemp(prefix="mall-audit-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_DIR"] = os.path.join(_test_root, "logs")
os.environ["SCREENSHOT_DIR"] = os.path.join(_test_root, "screenshots")
os.environ["LLM_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    """
    Create a test client for making HTTP requests.
    Unhandled exceptions are rendered as 500 responses instead of re-raised,
    so the error envelope can be asserted on.
    """
    with TestClient(test_app, raise_server_exceptions=False) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()


@pytest.fixture
def lighthouse_report():
    """A trimmed Lighthouse report with every audit the extractor reads."""
    return {
        "audits": {
            "largest-contentful-paint": {"numericValue": 2000},
            "cumulative-layout-shift": {"numericValue": 0.05},
            "total-blocking-time": {"numericValue": 200},
            "first-contentful-paint": {"numericValue": 1200},
            "speed-index": {"numericValue": 3100},
            "interactive": {"numericValue": 4500},
            "network-requests": {
                "details": {
                    "items": [
                        {"url": "https://shop.example/", "statusCode": 200},
                        {"url": "https://shop.example/app.js", "statusCode": 200},
                        {"url": "https://shop.example/missing.png", "statusCode": 404},
                    ]
                }
            },
            "redirects": {"details": {"items": [{"url": "http://shop.example/"}]}},
        }
    }
