"""Authentication and authorization core."""
