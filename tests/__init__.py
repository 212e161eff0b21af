"""
Vauban AI Test Suite
====================

Run all tests:
    pytest tests/ -v

Run with coverage:
    pytest tests/ --cov=vauban_ai --cov-report=html

Security note: These tests use mocked vendor APIs and
do not require real API keys.
"""
