"""Hierarchical taxonomy service with a closure-table path index."""

__version__ = "0.1.0"
