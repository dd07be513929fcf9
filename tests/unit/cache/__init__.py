"""Test package for the query cache.

Contains unit tests for:
- Fingerprint building and prefix matching
- QueryCache fetch lifecycle, polling and eviction
- InvalidationBus cascades
"""
