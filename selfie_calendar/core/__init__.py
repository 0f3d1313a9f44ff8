"""Core infrastructure: configuration, clocks and the shared HTTP client."""
