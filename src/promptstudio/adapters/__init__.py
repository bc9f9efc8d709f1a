"""Adapters for persistence, identity and notifications."""
