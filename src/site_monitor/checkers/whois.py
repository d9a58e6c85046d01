"""
WHOIS domain expiry resolver for website monitoring.

Resolves the registrable domain of a website to a WHOIS server, queries it
over TCP port 43, and extracts the expiry date from the free-form response.
This is best-effort enrichment: any failure yields no expiry information.
"""

import asyncio
import logging
import math
import re
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from ..models import DomainExpiry
from .base_checker import BaseChecker

logger = logging.getLogger(__name__)

WHOIS_PORT = 43
IANA_WHOIS_SERVER = 'whois.iana.org'

# TLD -> authoritative WHOIS server
WHOIS_SERVERS = {
    'com': 'whois.verisign-grs.com',
    'net': 'whois.verisign-grs.com',
    'org': 'whois.pir.org',
    'info': 'whois.afilias.net',
    'biz': 'whois.biz',
    'io': 'whois.nic.io',
    'co': 'whois.nic.co',
    'us': 'whois.nic.us',
    'uk': 'whois.nic.uk',
    'au': 'whois.auda.org.au',
    'de': 'whois.denic.de',
    'fr': 'whois.nic.fr',
    'nl': 'whois.domain-registry.nl',
    'ca': 'whois.cira.ca',
    'app': 'whois.nic.google',
    'dev': 'whois.nic.google',
    'id': 'whois.id',
    'me': 'whois.nic.me',
    'tv': 'whois.nic.tv',
    'cc': 'whois.nic.cc',
    'mobi': 'whois.dotmobiregistry.net',
    'name': 'whois.nic.name',
    'pro': 'whois.registry.pro',
}

# Second-level registries where the registrable domain spans three labels
SECOND_LEVEL_DOMAINS = {
    'co.id', 'or.id', 'web.id', 'go.id', 'ac.id', 'my.id', 'sch.id', 'biz.id',
    'co.uk', 'org.uk', 'me.uk', 'ltd.uk', 'plc.uk', 'ac.uk', 'gov.uk', 'net.uk',
    'com.au', 'net.au', 'org.au', 'edu.au', 'gov.au', 'id.au',
    'co.nz', 'org.nz', 'net.nz',
    'co.jp', 'ne.jp', 'or.jp',
    'com.br', 'net.br', 'org.br',
    'co.za', 'org.za',
    'com.sg', 'com.my', 'com.cn', 'com.mx', 'com.tr', 'com.ar',
    'co.in', 'net.in', 'org.in',
    'co.kr', 'co.th', 'com.hk', 'com.tw', 'com.ph', 'com.vn',
}

# Ordered label patterns; the first one whose value parses wins
EXPIRY_PATTERNS = [
    re.compile(r'Registry Expiry Date:\s*(.+)', re.IGNORECASE),
    re.compile(r'Expiry Date:\s*(.+)', re.IGNORECASE),
    re.compile(r'Expiration Date:\s*(.+)', re.IGNORECASE),
    re.compile(r'Expires On:\s*(.+)', re.IGNORECASE),
    re.compile(r'expires:\s*(.+)', re.IGNORECASE),
    re.compile(r'paid-till:\s*(.+)', re.IGNORECASE),
    re.compile(r'expire:\s*(.+)', re.IGNORECASE),
    re.compile(r'Registrar Registration Expiration Date:\s*(.+)', re.IGNORECASE),
]

IANA_REFERRAL_PATTERN = re.compile(r'whois:\s+(\S+)', re.IGNORECASE)

DATE_FORMATS = [
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%d',
    '%Y.%m.%d %H:%M:%S',
    '%Y.%m.%d',
    '%Y/%m/%d %H:%M:%S',
    '%Y/%m/%d',
    '%d-%b-%Y %H:%M:%S',
    '%d-%b-%Y',
    '%d.%m.%Y %H:%M:%S',
    '%d.%m.%Y',
    '%d/%m/%Y',
    '%d %b %Y',
    '%b %d %Y',
    '%a %b %d %H:%M:%S %Y',
    '%Y%m%d',
]


class WhoisChecker(BaseChecker):
    """
    Resolver for domain registration expiry.

    WHOIS server resolution:
    - static TLD map
    - otherwise a referral lookup against whois.iana.org

    Unmapped TLDs without an IANA referral are unsupported and yield None.
    """

    def __init__(self, timeout: float = 10, referral_timeout: float = 5):
        """
        Initialize the resolver.

        Args:
            timeout: Timeout in seconds for the registry WHOIS query
            referral_timeout: Timeout in seconds for the IANA referral lookup
        """
        super().__init__(timeout=timeout)
        self.referral_timeout = referral_timeout

    async def check(self, url: str, now: Optional[datetime] = None, **kwargs) -> Optional[DomainExpiry]:
        """
        Look up the domain expiry for the specified website URL.

        Args:
            url: The website URL
            now: Reference time for the countdown (default: current UTC time)
            **kwargs: Additional parameters (unused)

        Returns:
            DomainExpiry, or None if any stage failed
        """
        check_start_time = time.time()

        try:
            host = self._extract_host(url)
            if not host:
                return None

            domain, tld = self.registrable_domain(host)
            if not domain:
                logger.debug(f"Cannot derive a registrable domain from {host}")
                return None

            logger.debug(f"Starting WHOIS lookup for {domain} (tld={tld})")

            server = await self.resolve_server(tld)
            if not server:
                logger.info(f"No WHOIS server found for .{tld}, skipping domain expiry for {domain}")
                return None

            response = await self._query(server, domain, self.timeout)
            if not response:
                logger.warning(f"Empty WHOIS response from {server} for {domain}")
                return None

            expiry = self.parse_expiry(response, now=now)
            if expiry is None:
                logger.warning(f"Unable to extract expiration date from WHOIS data for {domain}")
            else:
                logger.debug(
                    f"Domain {domain} expires on {expiry.expires_at} "
                    f"({expiry.days_until_expiry} days) - lookup took {self._elapsed_ms(check_start_time)}ms"
                )
            return expiry

        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"WHOIS query failed for {url}: {str(e) or type(e).__name__}")
        except Exception as e:
            logger.warning(f"Domain WHOIS check failed for {url}: {str(e)}", exc_info=True)

        return None

    @staticmethod
    def _extract_host(url: str) -> Optional[str]:
        """Hostname without port or trailing dot, lowercased."""
        host = urlparse(url).hostname
        if not host:
            return None
        return host.rstrip('.').lower()

    @staticmethod
    def registrable_domain(host: str) -> Tuple[Optional[str], Optional[str]]:
        """
        Compute the likely registrable domain and TLD for a hostname.

        Args:
            host: Hostname such as 'www.example.co.uk'

        Returns:
            Tuple of (domain, tld), e.g. ('example.co.uk', 'uk'); (None, None)
            when the host has fewer than two labels
        """
        host = re.sub(r':\d+$', '', host)
        labels = [label for label in host.lower().split('.') if label]
        if len(labels) < 2:
            return None, None

        tld = labels[-1]
        if len(labels) >= 3 and '.'.join(labels[-2:]) in SECOND_LEVEL_DOMAINS:
            return '.'.join(labels[-3:]), tld

        return '.'.join(labels[-2:]), tld

    async def resolve_server(self, tld: str) -> Optional[str]:
        """
        Find the WHOIS server for a TLD.

        Args:
            tld: Top-level domain without the dot

        Returns:
            WHOIS server hostname, or None if no server could be found
        """
        server = WHOIS_SERVERS.get(tld.lower())
        if server:
            return server

        logger.debug(f"TLD .{tld} not in static map, asking {IANA_WHOIS_SERVER}")
        try:
            response = await self._query(IANA_WHOIS_SERVER, tld, self.referral_timeout)
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"IANA referral lookup failed for .{tld}: {str(e) or type(e).__name__}")
            return None

        if response:
            match = IANA_REFERRAL_PATTERN.search(response)
            if match:
                return match.group(1).strip()

        return None

    async def _query(self, server: str, query: str, timeout: float) -> Optional[str]:
        """
        Send a WHOIS query over TCP port 43 and read until EOF.

        Args:
            server: WHOIS server hostname
            query: Domain or TLD to query
            timeout: Timeout in seconds for connect and for reading

        Returns:
            Raw response text, or None if the server sent nothing

        Raises:
            OSError: If the connection fails
            asyncio.TimeoutError: If connect or read times out
        """
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(server, WHOIS_PORT),
            timeout=timeout
        )
        try:
            writer.write(f"{query}\r\n".encode('utf-8'))
            await writer.drain()
            data = await asyncio.wait_for(reader.read(), timeout=timeout)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

        text = data.decode('utf-8', errors='replace')
        return text or None

    def parse_expiry(self, response: str, now: Optional[datetime] = None) -> Optional[DomainExpiry]:
        """
        Extract the expiry date from a raw WHOIS response.

        Args:
            response: Raw WHOIS response text
            now: Reference time for the countdown (default: current UTC time)

        Returns:
            DomainExpiry from the first pattern whose value parses, or None
        """
        now = now or datetime.now(timezone.utc)

        for pattern in EXPIRY_PATTERNS:
            match = pattern.search(response)
            if not match:
                continue

            value = re.sub(r'\s*\(.*\)\s*$', '', match.group(1).strip()).strip()
            expiry = self._parse_date(value)
            if expiry is None:
                continue

            days = math.floor((expiry - now).total_seconds() / 86400)
            return DomainExpiry(expires_at=expiry.date(), days_until_expiry=days)

        return None

    @staticmethod
    def _parse_date(value: str) -> Optional[datetime]:
        """
        Parse the heterogeneous date formats found in WHOIS responses.

        Naive values are taken as UTC.

        Args:
            value: Date string such as '2026-08-13T04:00:00Z' or '13-Aug-2026'

        Returns:
            Timezone-aware datetime, or None if no format matched
        """
        value = value.strip()
        if not value:
            return None

        iso_value = value[:-1] + '+00:00' if value.endswith('Z') else value
        try:
            parsed = datetime.fromisoformat(iso_value)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            pass

        # Fractional seconds are dropped so the ISO formats below match
        value = re.sub(r'(T\d{2}:\d{2}:\d{2})\.\d+', r'\1', value)
        candidates: List[str] = [value]
        stripped = re.sub(r'\s+(UTC|GMT|Z)$', '', value, flags=re.IGNORECASE)
        if stripped != value:
            candidates.append(stripped)
        # Drop a trailing numeric offset or zone name such as '+0300' or 'MSK'
        bare = re.sub(r'\s+([+-]\d{2}:?\d{2}|[A-Z]{2,5})$', '', stripped)
        if bare != stripped:
            candidates.append(bare)

        for candidate in candidates:
            for fmt in DATE_FORMATS:
                try:
                    parsed = datetime.strptime(candidate, fmt)
                    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
                except ValueError:
                    continue

        return None
