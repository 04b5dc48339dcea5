"""
Service layer for Stack Sifter.

This module contains configuration loading and report rendering.
"""

from .config_manager import ConfigurationManager
from .report import build_report, render_report

__all__ = [
    "ConfigurationManager",
    "build_report",
    "render_report",
]
