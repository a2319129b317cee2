"""HTTP surface of eventrotator: feed relay and timeline API."""
