"""Core infrastructure for eventrotator: configuration, logging and HTTP clients."""
