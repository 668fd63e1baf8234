"""
Test Suite

Tests for the VAT quarter automation backend. Services run against the
in-memory repositories in conftest.py; repository tests assert MongoDB
query shapes against mocked collections.

To run tests:
    pytest
"""
