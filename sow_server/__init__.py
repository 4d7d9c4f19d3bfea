"""Adaptive requirements interview and Scope of Work generation service."""

__version__ = "0.1.0"
