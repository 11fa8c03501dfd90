"""Operator actions behind the admin gate."""
