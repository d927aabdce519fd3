"""Core configuration, errors and logging for Lingua Forum."""
