"""Production planning for a paper-bag converting line."""

__version__ = "0.1.0"
