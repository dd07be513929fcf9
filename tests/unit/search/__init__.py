"""Tests for search/navigation synchronization."""
