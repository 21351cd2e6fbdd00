"""Startup bootstrap for the containerized gateway."""

__version__ = "1.0.0"
