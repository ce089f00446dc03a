"""Conversion engines for vault-convert."""

from .conversion_engine import ConversionEngine, TreeToArrayEngine, ArrayToTreeEngine

__all__ = ["ConversionEngine", "TreeToArrayEngine", "ArrayToTreeEngine"]
