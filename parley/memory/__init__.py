"""Conversation memory storage and evaluation."""
