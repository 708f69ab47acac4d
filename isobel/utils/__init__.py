"""
Isobel Dashboard - Utilities
============================

Small helpers shared across the core and API packages.
"""

from isobel.utils.lazy import InitOnce

__all__ = ["InitOnce"]
