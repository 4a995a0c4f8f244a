"""Shared infrastructure: logging, errors and configuration."""
