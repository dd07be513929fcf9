"""Test doubles: manual clock and scripted fetchers."""
