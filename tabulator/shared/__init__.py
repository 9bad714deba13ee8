"""Shared utilities used across features."""
