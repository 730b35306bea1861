"""LINKIT Weekly newsletter curation agent."""

__version__ = "0.1.0"
