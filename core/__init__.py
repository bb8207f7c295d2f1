"""
Core Package

Contains the provider-agnostic core logic including:
- Config and logging shared by every module
- Schemas: Pydantic models for listings and dashboard responses
- Views: pure filter/sort functions behind the dashboard tabs
- Exceptions: fetch failures classified for display
"""
