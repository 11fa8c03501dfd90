"""Day-scoped campus events."""
