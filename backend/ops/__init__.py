"""Operational support: logging configuration."""
