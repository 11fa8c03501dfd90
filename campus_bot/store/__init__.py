"""Document storage and change subscriptions."""
