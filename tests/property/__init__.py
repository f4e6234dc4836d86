# tests/property/__init__.py
"""Property-based tests for doclib.

Test categories:
- flags/: Deduplication ordering and flag lifecycle state machine
"""
