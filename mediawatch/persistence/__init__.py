"""Durable manifest storage."""
from .manifest import JsonManifestStore

__all__ = ["JsonManifestStore"]
