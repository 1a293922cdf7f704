"""Test doubles for subprocess and provider calls."""
