"""Command-line interface for iotrace."""

from .main import app

__all__ = ['app']
