"""
SSL certificate inspector for website monitoring.

Captures the leaf certificate presented by an HTTPS website and extracts
issuer, subject, and validity window. The information is informational
only and never fails a check.
"""

import asyncio
import logging
import math
import socket
import ssl
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from OpenSSL import crypto

from ..models import SSLInfo
from .base_checker import BaseChecker

logger = logging.getLogger(__name__)

ASN1_TIME_FORMAT = '%Y%m%d%H%M%SZ'
DISPLAY_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


class SSLChecker(BaseChecker):
    """
    Inspector for the TLS certificate of an HTTPS website.

    Connects to host:port (default 443), retrieves the peer certificate
    without validating the chain, and parses it with pyOpenSSL.
    """

    def __init__(self, timeout: float = 30):
        super().__init__(timeout=timeout)

    async def check(self, url: str, **kwargs) -> Optional[SSLInfo]:
        """
        Inspect the certificate served for the specified URL.

        Args:
            url: The website URL (only https URLs are inspected)
            **kwargs: Additional parameters (unused)

        Returns:
            SSLInfo, or None if the URL is not https or inspection failed
        """
        parsed = urlparse(url)
        if parsed.scheme != 'https' or not parsed.hostname:
            return None

        host = parsed.hostname
        port = parsed.port or 443
        check_start_time = time.time()
        logger.debug(f"Starting SSL inspection for {host}:{port}")

        try:
            cert_dict = await self._get_certificate(host, port)
            if not cert_dict:
                logger.warning(f"No certificate presented by {host}:{port}")
                return None

            ssl_info = self._parse_certificate(cert_dict)

            logger.debug(f"Certificate details for {host}:")
            logger.debug(f"  Issuer: {ssl_info.issuer}")
            logger.debug(f"  Subject: {ssl_info.subject}")
            logger.debug(f"  Valid: {ssl_info.valid_from} -> {ssl_info.valid_to}")
            logger.debug(
                f"SSL inspection completed for {host} in {self._elapsed_ms(check_start_time)}ms"
            )
            return ssl_info

        except socket.gaierror as e:
            logger.warning(f"Failed to resolve {host} for SSL inspection: {str(e)}")
        except (socket.timeout, asyncio.TimeoutError):
            logger.warning(f"SSL connection to {host}:{port} timed out after {self.timeout}s")
        except ssl.SSLError as e:
            logger.warning(f"SSL error for {host}: {str(e)}")
        except Exception as e:
            logger.warning(f"SSL inspection failed for {host}: {str(e)}", exc_info=True)

        return None

    async def _get_certificate(self, host: str, port: int = 443) -> Dict[str, Any]:
        """
        Establish a TLS connection and retrieve the certificate.

        Runs the blocking socket work in the default thread pool.

        Args:
            host: The hostname to connect to
            port: The port to connect to (default: 443)

        Returns:
            Dictionary with issuer/subject components and validity strings

        Raises:
            socket.gaierror: If host cannot be resolved
            socket.timeout: If connection times out
            ssl.SSLError: If the TLS handshake fails
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get_certificate_sync, host, port)

    def _get_certificate_sync(self, host: str, port: int) -> Dict[str, Any]:
        """
        Synchronous helper to get the certificate (runs in thread pool).

        Args:
            host: The hostname to connect to
            port: The port to connect to

        Returns:
            Dictionary containing certificate information, empty if none was presented
        """
        # Capture the certificate even when it would not verify
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

        with socket.create_connection((host, port), timeout=self.timeout) as sock:
            with context.wrap_socket(sock, server_hostname=host) as ssock:
                cert_der = ssock.getpeercert(binary_form=True)

        if not cert_der:
            return {}

        return self._load_der(cert_der)

    @staticmethod
    def _load_der(cert_der: bytes) -> Dict[str, Any]:
        """Parse DER bytes with pyOpenSSL into a plain dictionary."""
        x509 = crypto.load_certificate(crypto.FILETYPE_ASN1, cert_der)

        subject = {
            name.decode(): value.decode()
            for name, value in x509.get_subject().get_components()
        }
        issuer = {
            name.decode(): value.decode()
            for name, value in x509.get_issuer().get_components()
        }

        return {
            'subject': subject,
            'issuer': issuer,
            'notBefore': x509.get_notBefore().decode('ascii'),
            'notAfter': x509.get_notAfter().decode('ascii'),
        }

    def _parse_certificate(
        self,
        cert_dict: Dict[str, Any],
        now: Optional[datetime] = None
    ) -> SSLInfo:
        """
        Build SSLInfo from a certificate dictionary.

        Args:
            cert_dict: Dictionary produced by _load_der
            now: Reference time for the expiry countdown (default: current UTC time)

        Returns:
            SSLInfo with issuer CN, subject CN and validity window

        Raises:
            ValueError: If the validity timestamps cannot be parsed
        """
        now = now or datetime.now(timezone.utc)

        issuer = cert_dict.get('issuer', {}).get('CN', 'Unknown')
        subject = cert_dict.get('subject', {}).get('CN', 'Unknown')

        valid_from = self._parse_asn1_time(cert_dict['notBefore'])
        valid_to = self._parse_asn1_time(cert_dict['notAfter'])

        expires_in_days = math.floor((valid_to - now).total_seconds() / 86400)

        return SSLInfo(
            issuer=issuer,
            subject=subject,
            valid_from=valid_from.strftime(DISPLAY_TIME_FORMAT),
            valid_to=valid_to.strftime(DISPLAY_TIME_FORMAT),
            expires_in_days=expires_in_days,
        )

    @staticmethod
    def _parse_asn1_time(value: str) -> datetime:
        """Parse an ASN.1 GeneralizedTime string such as '20251105103000Z'."""
        return datetime.strptime(value, ASN1_TIME_FORMAT).replace(tzinfo=timezone.utc)
