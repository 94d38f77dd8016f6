"""Shared helpers for the CLA backend."""
