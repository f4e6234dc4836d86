"""Core infrastructure: configuration, logging, time source and the flag store."""
