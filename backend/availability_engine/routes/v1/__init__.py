"""
Versioned API routes (v1).

Routers are mounted under /api/v1 by main.py.
"""

from . import availability, lessons

__all__ = ["availability", "lessons"]
