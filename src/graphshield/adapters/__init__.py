"""Adapters for the collaborators around the core."""
