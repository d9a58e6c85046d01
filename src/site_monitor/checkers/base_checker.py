"""
Base checker infrastructure for website monitoring.

Provides the abstract base class shared by every probe in the pipeline.
"""

import time
from abc import ABC, abstractmethod
from typing import Any


class BaseChecker(ABC):
    """
    Abstract base class for all website checkers.

    All checker implementations must inherit from this class and implement
    the check() method. Provides common functionality like timeout
    configuration and elapsed time measurement.
    """

    def __init__(self, timeout: float = 10):
        """
        Initialize the checker.

        Args:
            timeout: Maximum time in seconds to wait for check completion (default: 10)
        """
        self.timeout = timeout

    @property
    def check_type(self) -> str:
        """Short name of the check, e.g. 'http' or 'whois'."""
        return self.__class__.__name__.replace('Checker', '').replace('Scanner', '').lower()

    @abstractmethod
    async def check(self, url: str, **kwargs) -> Any:
        """
        Execute the check for the specified URL.

        Enrichment checkers return None when the information could not be
        collected; the HTTP checker always returns a probe result.

        Args:
            url: The website URL to check
            **kwargs: Additional parameters specific to the check type

        Returns:
            Check-specific result object, or None
        """
        pass

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        """Milliseconds elapsed since a time.time() reading."""
        return int((time.time() - start_time) * 1000)
