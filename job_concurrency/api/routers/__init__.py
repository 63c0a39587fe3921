"""
API Routers package.
"""

from . import jobs, stats

__all__ = ["jobs", "stats"]
