"""Test fixtures for fsview.

This package provides reusable test fixtures:
- backend: An in-memory FastAPI fake of the file server
- entries: Builders for Entry records and raw wire payloads
"""
