"""Companion client that polls an agent the way a scoring server does."""
