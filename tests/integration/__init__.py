"""Integration tests across cache, search and client layers."""
