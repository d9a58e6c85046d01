"""
Rich console output package for the website monitor.

Provides progress tracking, themed messages and error panels.
"""

from .output import ConsoleManager
from .progress import ProgressTracker
from .themes import get_theme, status_style, STATUS_COLORS, ICONS

__all__ = [
    'ConsoleManager',
    'ProgressTracker',
    'get_theme',
    'status_style',
    'STATUS_COLORS',
    'ICONS',
]
