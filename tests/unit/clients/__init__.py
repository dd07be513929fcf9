"""Tests for the dashboard API clients."""
