"""Pydantic schemas shared across the package."""
