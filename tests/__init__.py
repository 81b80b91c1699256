"""Lensmith test suite."""
