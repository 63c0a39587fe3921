"""
API Dependencies package.

Cross-cutting request dependencies.
"""

from .scheduler import get_scheduler_service

__all__ = ["get_scheduler_service"]
