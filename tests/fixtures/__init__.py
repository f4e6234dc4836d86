# tests/fixtures/__init__.py
"""Shared test data for doclib tests."""
