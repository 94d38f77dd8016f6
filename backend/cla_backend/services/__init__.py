# backend/cla_backend/services/__init__.py
"""Services package for the CLA backend."""

from .signature_service import signature_service

__all__ = ["signature_service"]
