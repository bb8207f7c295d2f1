"""
Unit Tests for the terminal listings client (scripts/watch_listings.py)

Run with:
    pytest tests/unit/test_watch_listings.py -v
"""

import importlib.util
from pathlib import Path

import pytest


SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "watch_listings.py"


@pytest.fixture(scope="module")
def watch_listings():
    spec = importlib.util.spec_from_file_location("watch_listings", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _message(cards, error=None, empty_message=None):
    return {
        "type": "listings",
        "status": {"last_fetch_at": "2024-04-01T12:00:00Z", "error": error},
        "view": {"view": "gainers", "count": len(cards), "cards": cards, "empty_message": empty_message},
    }


class TestRender:

    def test_header_and_rows(self, watch_listings):
        card = {
            "id": "pepe", "symbol": "PEPE", "name": "Pepe", "price": "$0.0000071",
            "change_24h": "25.00%", "direction": "up", "volume": "$999,999,999", "is_favorite": True,
        }
        text = watch_listings.render(_message([card]))
        lines = text.splitlines()

        assert lines[0].startswith("== gainers (1) | listings")
        assert lines[1].startswith("* PEPE")
        assert "+  25.00%" in lines[1]

    def test_error_and_empty_message(self, watch_listings):
        text = watch_listings.render(_message([], error="Request timed out. Please try again.", empty_message="No favorites yet."))

        assert "!! Request timed out. Please try again." in text
        assert text.endswith("No favorites yet.")
