# tests/fixtures/__init__.py
"""Shared test helpers for flowcheck tests.

Graph and node factories live in tests.fixtures.factories.
"""
