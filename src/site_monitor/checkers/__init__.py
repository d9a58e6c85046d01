"""
Checker modules for website monitoring.

Each checker module implements one stage of the monitoring pipeline.
"""

from .base_checker import BaseChecker
from .http import HTTPChecker, ProbeResult
from .ssl import SSLChecker
from .whois import WhoisChecker
from .assets import AssetChecker
from .content import ContentScanner

__all__ = ['BaseChecker', 'HTTPChecker', 'ProbeResult', 'SSLChecker', 'WhoisChecker', 'AssetChecker', 'ContentScanner']
