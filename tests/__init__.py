"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (views, client, feed, favorites, API)

Uses pytest with pytest-asyncio for testing async functionality. No test
touches the network; HTTP sessions and clients are mocked.
"""
