"""Conversation session storage backends."""
