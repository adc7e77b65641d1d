"""
Storage Layer.

This package holds the in-process job registry and the configuration file
handling.
"""

from .config_manager import ConfigManager
from .job_store import JobStore

__all__ = ["ConfigManager", "JobStore"]
