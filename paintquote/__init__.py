"""Painting quote pricing engine and conversational intake."""

__version__ = "0.1.0"
