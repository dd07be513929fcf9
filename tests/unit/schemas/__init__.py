"""Tests for API response schemas."""
