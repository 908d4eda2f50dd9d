"""Parley: message routing and response orchestration for chat agents."""

__version__ = "0.3.0"
