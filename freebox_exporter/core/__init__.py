"""Core building blocks: transport, errors and logging."""
