"""Dependency-ordered deployment of automation runbooks."""

__version__ = "0.1.0"
