"""Conversational intake: step catalogs, the intake machine and turn orchestration."""
