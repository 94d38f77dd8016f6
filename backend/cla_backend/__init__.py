# backend/cla_backend/__init__.py
"""CLA backend: signatures, approval lists and audit events."""

__version__ = "1.0.0"
