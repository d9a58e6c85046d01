"""
HTTP/HTTPS probe for website monitoring.

Issues the primary GET request, measures latency, and captures status code,
response headers, and a digest of the response body.
"""

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import aiohttp

from ..models import MonitoringStatus, mask_sensitive_headers
from .base_checker import BaseChecker

logger = logging.getLogger(__name__)


@dataclass
class ProbeResult:
    """
    Outcome of the primary HTTP request.

    Attributes:
        url: The requested URL
        status: MonitoringStatus derived from the response (or 'error')
        status_code: HTTP status code, None on transport failure
        response_time_ms: Wall-clock time until the body was read or the failure occurred
        headers: Response headers as name -> list of values
        content_hash: SHA-256 hex digest of the raw body bytes
        body: Decoded response body, used by the content scanner
        final_url: URL after redirects
        error_message: Failure description for 'down' and 'error'
    """
    url: str
    status: str
    status_code: Optional[int] = None
    response_time_ms: Optional[int] = None
    headers: Optional[Dict[str, List[str]]] = None
    content_hash: Optional[str] = None
    body: Optional[str] = None
    final_url: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def responded(self) -> bool:
        """True when the server answered with any HTTP status."""
        return self.status_code is not None


class HTTPChecker(BaseChecker):
    """
    Checker for HTTP/HTTPS availability.

    Sends a GET request with certificate verification enabled. HTTP error
    statuses are recorded as data; only transport failures (DNS, connect,
    TLS handshake, timeout) produce the 'error' status.
    """

    def __init__(self, timeout: float = 30):
        super().__init__(timeout=timeout)

    async def check(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        **kwargs
    ) -> ProbeResult:
        """
        Probe the specified URL.

        Args:
            url: The website URL to request
            headers: Custom request headers
            timeout: Request timeout in seconds, defaults to the checker timeout

        Returns:
            ProbeResult describing the response or the transport failure
        """
        timeout = timeout or self.timeout
        start_time = time.time()
        logger.debug(f"Starting HTTP probe for {url} (timeout={timeout}s)")
        if headers:
            logger.debug(f"Request headers for {url}: {mask_sensitive_headers(headers)}")

        try:
            status_code, response_headers, raw_body, body, final_url = await self._make_request(
                url, headers or {}, timeout
            )
            response_time_ms = self._elapsed_ms(start_time)

            status = self._determine_status(status_code)
            error_message = f"HTTP {status_code} error" if status == MonitoringStatus.DOWN else None

            logger.debug(
                f"HTTP probe for {url} completed: status={status_code}, time={response_time_ms}ms"
            )

            return ProbeResult(
                url=url,
                status=status,
                status_code=status_code,
                response_time_ms=response_time_ms,
                headers=response_headers,
                content_hash=hashlib.sha256(raw_body).hexdigest(),
                body=body,
                final_url=final_url,
                error_message=error_message,
            )

        except asyncio.TimeoutError:
            logger.warning(f"HTTP request to {url} timed out after {timeout}s")
            return self._error_result(url, start_time, f"Request timed out after {timeout}s")
        except aiohttp.ClientError as e:
            message = str(e) or f"{type(e).__name__} occurred"
            logger.warning(f"HTTP request failed for {url}: {message}")
            return self._error_result(url, start_time, message)
        except Exception as e:
            logger.error(f"HTTP check failed for {url}: {str(e)}", exc_info=True)
            return self._error_result(url, start_time, f"HTTP check failed: {str(e)}")

    def _error_result(self, url: str, start_time: float, message: str) -> ProbeResult:
        return ProbeResult(
            url=url,
            status=MonitoringStatus.ERROR,
            response_time_ms=self._elapsed_ms(start_time),
            error_message=message,
        )

    async def _make_request(
        self,
        url: str,
        headers: Dict[str, str],
        timeout: float
    ) -> Tuple[int, Dict[str, List[str]], bytes, str, str]:
        """
        Send the GET request and read the full body.

        Args:
            url: The URL to request
            headers: Request headers
            timeout: Total request timeout in seconds

        Returns:
            Tuple of (status_code, response_headers, raw_body, decoded_body, final_url)

        Raises:
            aiohttp.ClientError: If the request fails
            asyncio.TimeoutError: If the request times out
        """
        client_timeout = aiohttp.ClientTimeout(total=timeout)

        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url, headers=headers, allow_redirects=True) as response:
                raw_body = await response.read()

                response_headers: Dict[str, List[str]] = {}
                for name, value in response.headers.items():
                    response_headers.setdefault(name, []).append(value)

                return (
                    response.status,
                    response_headers,
                    raw_body,
                    self._decode_body(raw_body, response.charset),
                    str(response.url),
                )

    @staticmethod
    def _decode_body(raw_body: bytes, charset: Optional[str]) -> str:
        """Decode the body using the declared charset, falling back to UTF-8."""
        try:
            return raw_body.decode(charset or 'utf-8', errors='replace')
        except LookupError:
            return raw_body.decode('utf-8', errors='replace')

    def _determine_status(self, status_code: int) -> str:
        """
        Determine monitoring status based on HTTP status code.

        Status levels:
        - up: 2xx
        - down: 4xx and 5xx
        - warning: anything else (1xx, 3xx)

        Args:
            status_code: HTTP status code from response

        Returns:
            MonitoringStatus value
        """
        if 200 <= status_code < 300:
            return MonitoringStatus.UP
        elif status_code >= 400:
            return MonitoringStatus.DOWN
        else:
            return MonitoringStatus.WARNING
