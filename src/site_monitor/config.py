"""Configuration management for website monitoring.

The manifest is a YAML or JSON file:

    monitoring:
      report_recipient: ops@example.com
      subscribers: [ops@example.com]
      database_url: sqlite+aiosqlite:///site-monitor.db
      storage_dir: storage
      timeout: 30
      screenshots: false
      max_concurrent: 10
      smtp:
        host: smtp.example.com
        port: 587
        username: monitor
        password: secret
        use_tls: true
        from_address: monitor@example.com
    websites:
      - url: https://example.com
        name: Example
        headers:
          Authorization: Bearer token
        active: true
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .database import DEFAULT_DATABASE_URL
from .mailer import SMTPConfig
from .models import Website

# Environment overrides
RECIPIENT_ENV_VAR = 'REPORT_RECIPIENT_EMAIL'
DATABASE_URL_ENV_VAR = 'SITE_MONITOR_DATABASE_URL'

DEFAULT_MANIFEST_FILES = ('websites.yaml', 'websites.json')


@dataclass
class MonitoringSettings:
    """Settings shared by every monitoring run."""

    report_recipient: Optional[str] = None
    subscribers: List[str] = field(default_factory=list)
    database_url: str = DEFAULT_DATABASE_URL
    storage_dir: str = 'storage'
    timeout: float = 30
    screenshots: bool = False
    max_concurrent: int = 10
    smtp: Optional[SMTPConfig] = None


@dataclass
class ManifestConfig:
    """Complete manifest configuration."""

    settings: MonitoringSettings
    websites: List[Website]

    @property
    def active_websites(self) -> List[Website]:
        return [website for website in self.websites if website.active]


def get_default_manifest_path() -> Optional[str]:
    """
    Find default manifest file in current directory.

    Looks for websites.yaml first, then websites.json.

    Returns:
        Path to manifest file if found, None otherwise.
    """
    for name in DEFAULT_MANIFEST_FILES:
        if Path(name).exists():
            return name
    return None


def _require_type(value: Any, expected: type, name: str) -> None:
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ValueError(f"'{name}' must be {expected.__name__}")


def _parse_smtp(data: Any) -> Optional[SMTPConfig]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError("'monitoring.smtp' must be an object/dictionary")

    host = data.get('host')
    if not host:
        raise ValueError("'monitoring.smtp' is missing required 'host' field")

    port = data.get('port', 587)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ValueError(f"'monitoring.smtp.port' must be a valid port number, got: {port!r}")

    return SMTPConfig(
        host=str(host),
        port=port,
        username=str(data.get('username') or ''),
        password=str(data.get('password') or ''),
        use_tls=bool(data.get('use_tls', True)),
        from_address=str(data.get('from_address') or ''),
    )


def _parse_settings(data: Any) -> MonitoringSettings:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("'monitoring' must be an object/dictionary")

    subscribers = data.get('subscribers', [])
    if not isinstance(subscribers, list):
        raise ValueError("'monitoring.subscribers' must be a list")

    timeout = data.get('timeout', 30)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError(f"'monitoring.timeout' must be a positive number, got: {timeout!r}")

    max_concurrent = data.get('max_concurrent', 10)
    _require_type(max_concurrent, int, 'monitoring.max_concurrent')
    if max_concurrent < 1:
        raise ValueError("'monitoring.max_concurrent' must be at least 1")

    screenshots = data.get('screenshots', False)
    _require_type(screenshots, bool, 'monitoring.screenshots')

    return MonitoringSettings(
        report_recipient=data.get('report_recipient') or None,
        subscribers=[str(s) for s in subscribers],
        database_url=data.get('database_url') or DEFAULT_DATABASE_URL,
        storage_dir=str(data.get('storage_dir') or 'storage'),
        timeout=timeout,
        screenshots=screenshots,
        max_concurrent=max_concurrent,
        smtp=_parse_smtp(data.get('smtp')),
    )


def _parse_website(idx: int, data: Any) -> Website:
    if isinstance(data, str):
        data = {'url': data}
    if not isinstance(data, dict):
        raise ValueError(f"Website at index {idx} must be a URL or an object/dictionary")

    url = data.get('url')
    if not url:
        raise ValueError(f"Website at index {idx} is missing required 'url' field")

    headers = data.get('headers') or {}
    if not isinstance(headers, dict):
        raise ValueError(f"Website '{url}': 'headers' must be an object/dictionary")

    active = data.get('active', True)
    if not isinstance(active, bool):
        raise ValueError(f"Website '{url}': 'active' must be true or false")

    try:
        return Website(
            url=str(url).strip(),
            name=data.get('name'),
            headers={str(k): str(v) for k, v in headers.items()},
            active=active,
        )
    except ValueError as e:
        raise ValueError(f"Website at index {idx}: {str(e)}")


def apply_env_overrides(settings: MonitoringSettings, environ: Optional[Dict[str, str]] = None) -> MonitoringSettings:
    """Override settings from REPORT_RECIPIENT_EMAIL and SITE_MONITOR_DATABASE_URL."""
    environ = os.environ if environ is None else environ

    if environ.get(RECIPIENT_ENV_VAR):
        settings.report_recipient = environ[RECIPIENT_ENV_VAR]
    if environ.get(DATABASE_URL_ENV_VAR):
        settings.database_url = environ[DATABASE_URL_ENV_VAR]
    return settings


def load_manifest(file_path: str, environ: Optional[Dict[str, str]] = None) -> ManifestConfig:
    """
    Load and parse manifest file (YAML or JSON).

    Args:
        file_path: Path to manifest file
        environ: Environment for overrides (default: os.environ)

    Returns:
        Parsed ManifestConfig object

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file format is invalid or parsing fails
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Manifest file not found: {file_path}")

    try:
        content = path.read_text(encoding='utf-8')

        if path.suffix in ['.yaml', '.yml']:
            data = yaml.safe_load(content)
        elif path.suffix == '.json':
            data = json.loads(content)
        else:
            raise ValueError(f"Unsupported file format: {path.suffix}. Use .yaml, .yml, or .json")

        if data is None:
            raise ValueError("Manifest file is empty")
        if not isinstance(data, dict):
            raise ValueError("Manifest must be an object/dictionary at the top level")

        settings = apply_env_overrides(_parse_settings(data.get('monitoring')), environ)

        websites_data = data.get('websites', [])
        if not isinstance(websites_data, list):
            raise ValueError("'websites' must be a list")

        websites = [_parse_website(idx, item) for idx, item in enumerate(websites_data)]

        seen = set()
        for website in websites:
            if website.url in seen:
                raise ValueError(f"Duplicate website URL: {website.url}")
            seen.add(website.url)

        return ManifestConfig(settings=settings, websites=websites)

    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax: {str(e)}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON syntax at line {e.lineno}, column {e.colno}: {e.msg}")
