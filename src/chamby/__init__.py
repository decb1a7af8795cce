"""Chamby home-services booking engine."""

__version__ = "0.1.0"
