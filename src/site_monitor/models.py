"""Data models for website monitoring results and reports."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import re


# Sensitive header keys that should be masked
SENSITIVE_HEADER_KEYS = {
    "authorization",
    "api-key",
    "x-api-key",
    "x-auth-token",
    "x-access-token",
    "cookie",
    "set-cookie",
    "proxy-authorization",
}


def mask_sensitive_headers(headers: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    """Mask sensitive header values for display/logging.

    Args:
        headers: Dictionary of HTTP headers or None

    Returns:
        Dictionary with sensitive values masked or None if input is None
    """
    if not headers:
        return headers

    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADER_KEYS:
            # Show only first 4 chars if long enough
            if len(value) > 8:
                masked[key] = f"{value[:4]}***"
            else:
                masked[key] = "***"
        else:
            masked[key] = value

    return masked


def sanitize_string(text: str, max_length: int = 200) -> str:
    """Sanitize string for safe display by removing control characters and limiting length.

    Args:
        text: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not text:
        return text

    # Remove control characters except newline and tab
    sanitized = re.sub(r'[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f-\x9f]', '', text)

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."

    return sanitized


def slugify(text: str, default: str = "home") -> str:
    """Turn arbitrary text into a filesystem-safe lowercase slug."""
    slug = re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')
    return slug[:120].rstrip('-') or default


class MonitoringStatus:
    """Terminal classification of a single probe."""
    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"
    WARNING = "warning"
    ERROR = "error"

    ALL = (UNKNOWN, UP, DOWN, WARNING, ERROR)
    # Statuses that carry an error message
    FAILING = (DOWN, ERROR)


class ReportStatus:
    """Delivery lifecycle of a monitoring report."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class Website:
    """A website to monitor, as supplied by the surrounding application."""
    url: str
    name: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    active: bool = True

    def __post_init__(self):
        """Validate URL and fill in the display name."""
        parsed = urlparse(self.url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"URL scheme must be http or https, got: {parsed.scheme or '(none)'}")
        if not parsed.netloc:
            raise ValueError(f"URL must include a host: {self.url}")
        # urlparse raises ValueError for non-numeric or out-of-range ports
        if parsed.port == 0:
            raise ValueError(f"URL port must be between 1 and 65535: {self.url}")
        if not self.name:
            self.name = parsed.hostname
        self.name = sanitize_string(self.name, max_length=100)

    @property
    def host(self) -> str:
        """Lowercased hostname without port."""
        return (urlparse(self.url).hostname or "").lower()

    @property
    def slug(self) -> str:
        """Storage key for this website (scheme, host, explicit port and path)."""
        parsed = urlparse(self.url)
        port = f"-{parsed.port}" if parsed.port else ""
        return slugify(f"{parsed.scheme}-{self.host}{port}{parsed.path}", default="site")

    def get_safe_headers_for_display(self) -> Optional[Dict[str, str]]:
        """Get request headers with sensitive values masked."""
        return mask_sensitive_headers(self.headers)


@dataclass
class SSLInfo:
    """Informational certificate details for an HTTPS website."""
    issuer: str
    subject: str
    valid_from: str
    valid_to: str
    expires_in_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issuer": self.issuer,
            "subject": self.subject,
            "valid_from": self.valid_from,
            "valid_to": self.valid_to,
            "expires_in_days": self.expires_in_days,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SSLInfo":
        return cls(
            issuer=data.get("issuer", "Unknown"),
            subject=data.get("subject", "Unknown"),
            valid_from=data.get("valid_from", ""),
            valid_to=data.get("valid_to", ""),
            expires_in_days=int(data.get("expires_in_days", 0)),
        )


@dataclass
class DomainExpiry:
    """Domain registration expiry extracted from WHOIS."""
    expires_at: date
    days_until_expiry: int


@dataclass
class PageScan:
    """Diff outcome for one scanned page."""
    url: str
    slug: str
    change_percent: float
    significant: bool
    previous_file_found: bool
    snapshot: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "slug": self.slug,
            "change_percent": self.change_percent,
            "significant": self.significant,
            "previous_file_found": self.previous_file_found,
            "snapshot": self.snapshot,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageScan":
        return cls(
            url=data.get("url", ""),
            slug=data.get("slug", ""),
            change_percent=float(data.get("change_percent", 0.0)),
            significant=bool(data.get("significant", False)),
            previous_file_found=bool(data.get("previous_file_found", False)),
            snapshot=data.get("snapshot", ""),
        )


@dataclass
class BrokenAsset:
    """A same-domain stylesheet or script that answered 404."""
    url: str
    type: str  # 'css' or 'js'
    status: int = 404

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "type": self.type, "status": self.status}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrokenAsset":
        return cls(
            url=data.get("url", ""),
            type=data.get("type", "unknown"),
            status=int(data.get("status", 404)),
        )


@dataclass
class ScanResults:
    """Aggregated content scan for a website.

    The two flags are stored explicitly rather than derived, because
    persisted records may carry a flag whose detail list did not survive.
    """
    pages: List[PageScan] = field(default_factory=list)
    broken_assets: List[BrokenAsset] = field(default_factory=list)
    any_significant_change: bool = False
    has_broken_assets: bool = False
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        pages: List[PageScan],
        broken_assets: List[BrokenAsset],
        scanned_at: Optional[datetime] = None
    ) -> "ScanResults":
        """Create scan results with flags computed from the detail lists."""
        return cls(
            pages=pages,
            broken_assets=broken_assets,
            any_significant_change=any(page.significant for page in pages),
            has_broken_assets=len(broken_assets) > 0,
            scanned_at=scanned_at or datetime.now(timezone.utc),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages": [page.to_dict() for page in self.pages],
            "broken_assets": [asset.to_dict() for asset in self.broken_assets],
            "any_significant_change": self.any_significant_change,
            "has_broken_assets": self.has_broken_assets,
            "scanned_at": self.scanned_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanResults":
        scanned_at = data.get("scanned_at")
        return cls(
            pages=[PageScan.from_dict(p) for p in data.get("pages") or []],
            broken_assets=[BrokenAsset.from_dict(a) for a in data.get("broken_assets") or []],
            any_significant_change=bool(data.get("any_significant_change", False)),
            has_broken_assets=bool(data.get("has_broken_assets", False)),
            scanned_at=datetime.fromisoformat(scanned_at) if scanned_at else datetime.now(timezone.utc),
        )


@dataclass
class MonitoringResult:
    """Outcome of one monitoring run against a website."""
    website_url: str
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: str = MonitoringStatus.UNKNOWN
    status_code: Optional[int] = None
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    headers: Optional[Dict[str, List[str]]] = None
    content_hash: Optional[str] = None
    content_changed: bool = False
    ssl_info: Optional[SSLInfo] = None
    domain_expires_at: Optional[date] = None
    domain_days_until_expiry: Optional[int] = None
    scan_results: Optional[ScanResults] = None
    screenshot_path: Optional[str] = None
    id: Optional[int] = None

    def is_up(self) -> bool:
        return self.status == MonitoringStatus.UP

    def is_failing(self) -> bool:
        """Down or errored."""
        return self.status in MonitoringStatus.FAILING

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable representation for export."""
        return {
            "id": self.id,
            "website_url": self.website_url,
            "checked_at": self.checked_at.isoformat(),
            "status": self.status,
            "status_code": self.status_code,
            "response_time_ms": self.response_time_ms,
            "error_message": self.error_message,
            "content_hash": self.content_hash,
            "content_changed": self.content_changed,
            "ssl_info": self.ssl_info.to_dict() if self.ssl_info else None,
            "domain_expires_at": self.domain_expires_at.isoformat() if self.domain_expires_at else None,
            "domain_days_until_expiry": self.domain_days_until_expiry,
            "scan_results": self.scan_results.to_dict() if self.scan_results else None,
            "screenshot_path": self.screenshot_path,
        }


@dataclass
class MonitoringReport:
    """A rendered issue summary addressed to one recipient."""
    recipient: str
    subject: str
    summary: Dict[str, List[Dict[str, Any]]]
    body_html: str = ""
    status: str = ReportStatus.PENDING
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    triggered_by: str = "command"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[int] = None

    def is_sent(self) -> bool:
        return self.status == ReportStatus.SENT

    def has_failed(self) -> bool:
        return self.status == ReportStatus.FAILED

    def flagged_count(self) -> int:
        """Total flagged entries across all issue buckets."""
        summary = self.summary or {}
        return sum(
            len(summary.get(bucket) or [])
            for bucket in ("down", "expiring", "content_changed", "broken_assets")
        )
