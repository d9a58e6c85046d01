"""
Website Monitor

Probes websites for availability, certificate and domain expiry, content
drift and broken assets, and aggregates the results into email reports.
"""

__version__ = "0.1.0"
