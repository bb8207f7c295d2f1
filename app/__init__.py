"""
FastAPI Application Package

This package contains the FastAPI application: REST endpoints for the dashboard
views, favorites and refresh control, and the WebSocket that pushes each refresh.
"""
