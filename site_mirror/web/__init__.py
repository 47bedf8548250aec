"""
Web module for the site mirror.

Provides a Flask-based JSON API for running mirror jobs.
"""

from .app import create_app

__all__ = ["create_app"]
