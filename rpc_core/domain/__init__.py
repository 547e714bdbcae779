"""Domain models and exceptions for rpc-core."""
