"""
Tests Package - Unit and Integration Tests

Test structure:
- tests/unit/ - Query builder, schemas, security, rate limiter, logging
- tests/integration/ - Store retries and HTTP endpoints against a temp SQLite file
- tests/conftest.py - Shared fixtures (store, app, client, users, tokens)
"""
