"""
CodeBakers Web Interface
========================

HTTP access to the engineering orchestrator.
"""

from .api import router

__all__ = ["router"]
