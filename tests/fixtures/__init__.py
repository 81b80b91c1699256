"""Test fixtures for lensmith testing.

- units.py: extension units that record every call into a shared log
"""
