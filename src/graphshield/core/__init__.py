"""Core domain: configuration, types, errors and the orchestrator."""
