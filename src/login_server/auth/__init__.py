"""Credential hashing helpers."""
