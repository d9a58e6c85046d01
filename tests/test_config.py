"""
Tests for configuration management module.

Tests YAML/JSON parsing, validation, environment overrides, and default
manifest path resolution.
"""

import json

import pytest
import yaml

from site_monitor.config import (
    ManifestConfig,
    MonitoringSettings,
    apply_env_overrides,
    get_default_manifest_path,
    load_manifest,
)
from site_monitor.database import DEFAULT_DATABASE_URL
from site_monitor.models import Website


FULL_MANIFEST = {
    'monitoring': {
        'report_recipient': 'ops@example.com',
        'subscribers': ['ops@example.com', 'dev@example.com'],
        'database_url': 'sqlite+aiosqlite:///data/monitor.db',
        'storage_dir': 'data/storage',
        'timeout': 15,
        'screenshots': True,
        'max_concurrent': 4,
        'smtp': {
            'host': 'smtp.example.com',
            'port': 465,
            'username': 'monitor',
            'password': 'secret',
            'use_tls': False,
            'from_address': 'monitor@example.com',
        },
    },
    'websites': [
        {
            'url': 'https://example.com',
            'name': 'Example',
            'headers': {'Authorization': 'Bearer token'},
        },
        'https://shop.example.com/',
        {'url': 'https://old.example.com', 'active': False},
    ],
}


def write_yaml(tmp_path, data, name="websites.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestManifestConfig:
    """Tests for ManifestConfig dataclass."""

    def test_active_websites(self):
        manifest = ManifestConfig(
            settings=MonitoringSettings(),
            websites=[Website(url="https://a.com"), Website(url="https://b.com", active=False)],
        )

        assert [w.url for w in manifest.active_websites] == ["https://a.com"]

    def test_settings_defaults(self):
        settings = MonitoringSettings()

        assert settings.report_recipient is None
        assert settings.subscribers == []
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.storage_dir == 'storage'
        assert settings.timeout == 30
        assert settings.screenshots is False
        assert settings.max_concurrent == 10
        assert settings.smtp is None


class TestGetDefaultManifestPath:
    """Tests for get_default_manifest_path function."""

    def test_finds_websites_yaml_first(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "websites.yaml").write_text("websites: []")
        (tmp_path / "websites.json").write_text('{"websites": []}')

        assert get_default_manifest_path() == "websites.yaml"

    def test_falls_back_to_json(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "websites.json").write_text('{"websites": []}')

        assert get_default_manifest_path() == "websites.json"

    def test_none_when_missing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert get_default_manifest_path() is None


class TestLoadManifest:
    """Tests for load_manifest function."""

    def test_full_yaml_manifest(self, tmp_path):
        manifest = load_manifest(write_yaml(tmp_path, FULL_MANIFEST), environ={})
        settings = manifest.settings

        assert settings.report_recipient == 'ops@example.com'
        assert settings.subscribers == ['ops@example.com', 'dev@example.com']
        assert settings.database_url == 'sqlite+aiosqlite:///data/monitor.db'
        assert settings.storage_dir == 'data/storage'
        assert settings.timeout == 15
        assert settings.screenshots is True
        assert settings.max_concurrent == 4
        assert settings.smtp.host == 'smtp.example.com'
        assert settings.smtp.port == 465
        assert settings.smtp.use_tls is False
        assert settings.smtp.from_address == 'monitor@example.com'

        assert len(manifest.websites) == 3
        assert manifest.websites[0].name == 'Example'
        assert manifest.websites[0].headers == {'Authorization': 'Bearer token'}
        assert manifest.websites[1].url == 'https://shop.example.com/'
        assert manifest.websites[1].name == 'shop.example.com'
        assert manifest.websites[2].active is False
        assert len(manifest.active_websites) == 2

    def test_json_manifest(self, tmp_path):
        path = tmp_path / "websites.json"
        path.write_text(json.dumps({'websites': [{'url': 'https://example.com'}]}))

        manifest = load_manifest(str(path), environ={})

        assert manifest.websites[0].url == 'https://example.com'
        assert manifest.settings.report_recipient is None

    def test_minimal_manifest_uses_defaults(self, tmp_path):
        manifest = load_manifest(write_yaml(tmp_path, {'websites': ['https://example.com']}), environ={})

        assert manifest.settings.database_url == DEFAULT_DATABASE_URL
        assert manifest.settings.smtp is None

    def test_env_overrides(self, tmp_path):
        environ = {
            'REPORT_RECIPIENT_EMAIL': 'oncall@example.com',
            'SITE_MONITOR_DATABASE_URL': 'sqlite+aiosqlite:////var/lib/monitor.db',
        }

        manifest = load_manifest(write_yaml(tmp_path, FULL_MANIFEST), environ=environ)

        assert manifest.settings.report_recipient == 'oncall@example.com'
        assert manifest.settings.database_url == 'sqlite+aiosqlite:////var/lib/monitor.db'

    def test_empty_env_values_are_ignored(self):
        settings = apply_env_overrides(MonitoringSettings(report_recipient='ops@example.com'),
                                       environ={'REPORT_RECIPIENT_EMAIL': ''})

        assert settings.report_recipient == 'ops@example.com'

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Manifest file not found"):
            load_manifest(str(tmp_path / "missing.yaml"))

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "websites.txt"
        path.write_text("websites: []")

        with pytest.raises(ValueError, match="Unsupported file format"):
            load_manifest(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "websites.yaml"
        path.write_text("")

        with pytest.raises(ValueError, match="Manifest file is empty"):
            load_manifest(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "websites.yaml"
        path.write_text("websites: [unclosed\n  - : :")

        with pytest.raises(ValueError, match="Invalid YAML syntax"):
            load_manifest(str(path))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "websites.json"
        path.write_text('{"websites": [}')

        with pytest.raises(ValueError, match="Invalid JSON syntax"):
            load_manifest(str(path))

    def test_top_level_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="object/dictionary at the top level"):
            load_manifest(write_yaml(tmp_path, ['https://example.com']))

    @pytest.mark.parametrize("data,message", [
        ({'websites': 'https://example.com'}, "'websites' must be a list"),
        ({'websites': [{'name': 'No URL'}]}, "missing required 'url'"),
        ({'websites': [42]}, "must be a URL or an object"),
        ({'websites': ['ftp://example.com']}, "URL scheme must be http or https"),
        ({'websites': ['https://']}, "must include a host"),
        ({'websites': [{'url': 'https://example.com', 'headers': ['x']}]}, "'headers' must be"),
        ({'websites': [{'url': 'https://example.com', 'active': 'yes'}]}, "'active' must be true or false"),
        ({'websites': ['https://example.com', 'https://example.com']}, "Duplicate website URL"),
        ({'monitoring': [], 'websites': []}, "'monitoring' must be an object"),
        ({'monitoring': {'timeout': 0}, 'websites': []}, "'monitoring.timeout' must be a positive number"),
        ({'monitoring': {'timeout': 'fast'}, 'websites': []}, "'monitoring.timeout' must be a positive number"),
        ({'monitoring': {'max_concurrent': 0}, 'websites': []}, "must be at least 1"),
        ({'monitoring': {'max_concurrent': True}, 'websites': []}, "'monitoring.max_concurrent' must be int"),
        ({'monitoring': {'screenshots': 'yes'}, 'websites': []}, "'monitoring.screenshots' must be bool"),
        ({'monitoring': {'subscribers': 'ops@example.com'}, 'websites': []}, "'monitoring.subscribers' must be a list"),
        ({'monitoring': {'smtp': {'port': 25}}, 'websites': []}, "missing required 'host'"),
        ({'monitoring': {'smtp': {'host': 'mx', 'port': 70000}}, 'websites': []}, "valid port number"),
    ])
    def test_validation_errors(self, tmp_path, data, message):
        with pytest.raises(ValueError, match=message):
            load_manifest(write_yaml(tmp_path, data), environ={})

    def test_website_error_names_index(self, tmp_path):
        data = {'websites': ['https://example.com', 'mailto:ops@example.com']}

        with pytest.raises(ValueError, match="Website at index 1"):
            load_manifest(write_yaml(tmp_path, data), environ={})
