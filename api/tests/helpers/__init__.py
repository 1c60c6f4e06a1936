"""
Test helpers package for Hookline

Provides reusable helpers for:
- Test data factories (factories.py)
- Deterministic clock and in-memory repositories (factories.py)
"""
