"""LLM providers and generation helpers."""
