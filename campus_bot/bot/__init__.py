"""Conversation transcript and turn controller."""
