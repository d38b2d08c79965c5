from pathlib import Path

import pytest

from folio.config import (
    DEFAULT_PORT,
    load_config,
    load_defaults,
    load_site_config,
    resolve_base_url,
)
from folio.errors import ConfigParseError


def test_defaults_without_config_file(tmp_path):
    config = load_site_config(tmp_path)
    assert config.base_url == "/"
    assert config.port == DEFAULT_PORT
    assert config.css == "styles.css"
    assert config.content_dir == tmp_path / "markdown"
    assert config.output_dir == tmp_path / "published"
    assert config.asset_dirs == [tmp_path / "css", tmp_path / "js", tmp_path / "images"]


def test_toml_config_is_loaded(tmp_path):
    (tmp_path / "config.toml").write_text(
        'url = "https://example.com"\ncss = "site.css"\nport = 5000\n', encoding="utf-8"
    )
    config = load_site_config(tmp_path)
    assert config.base_url == "https://example.com/"
    assert config.css == "site.css"
    assert config.port == 5000
    assert config.domain == "example.com"


def test_yaml_config_is_loaded(tmp_path):
    (tmp_path / "config.yaml").write_text("url: https://yaml.example.com/\n", encoding="utf-8")
    assert load_config(tmp_path)["url"] == "https://yaml.example.com/"


def test_toml_config_wins_over_yaml(tmp_path):
    (tmp_path / "config.toml").write_text('url = "https://toml.example.com"\n', encoding="utf-8")
    (tmp_path / "config.yaml").write_text("url: https://yaml.example.com\n", encoding="utf-8")
    assert load_config(tmp_path)["url"] == "https://toml.example.com"


def test_malformed_config_raises(tmp_path):
    (tmp_path / "config.toml").write_text("url = \n", encoding="utf-8")
    with pytest.raises(ConfigParseError) as excinfo:
        load_config(tmp_path)
    assert excinfo.value.source_path == tmp_path / "config.toml"


def test_config_value_types_are_checked(tmp_path):
    (tmp_path / "config.toml").write_text('port = "eighty"\n', encoding="utf-8")
    with pytest.raises(ConfigParseError, match="port"):
        load_config(tmp_path)


def test_defaults_file_is_loaded(tmp_path):
    (tmp_path / "defaults.toml").write_text('author = "Ann"\n', encoding="utf-8")
    assert load_defaults(tmp_path)["author"] == "Ann"


def test_malformed_defaults_file_raises(tmp_path):
    (tmp_path / "defaults.yaml").write_text("author: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigParseError):
        load_defaults(tmp_path)


def test_local_build_uses_loopback_url():
    assert resolve_base_url({"url": "https://example.com"}, local=True, port=4000) == "http://127.0.0.1:4000/"


def test_ci_build_trusts_production_url():
    config = {"url": "https://example.com", "dev_url": "https://dev.example.com"}
    assert resolve_base_url(config, ci=True) == "https://example.com/"


def test_plain_build_prefers_dev_url():
    config = {"url": "https://example.com", "dev_url": "https://dev.example.com"}
    assert resolve_base_url(config) == "https://dev.example.com/"
    assert resolve_base_url({"url": "https://example.com"}) == "https://example.com/"


def test_base_url_falls_back_to_root():
    assert resolve_base_url({}) == "/"
    assert resolve_base_url({}, ci=True) == "/"


def test_port_override_applies_to_local_builds(tmp_path):
    config = load_site_config(tmp_path, local=True, port=9001)
    assert config.port == 9001
    assert config.base_url == "http://127.0.0.1:9001/"


def test_domain_is_empty_without_url():
    from folio.config import SiteConfig

    assert SiteConfig(project_root=Path(".")).domain == ""


def test_archives_are_enabled_by_default(tmp_path):
    assert load_site_config(tmp_path).archives is True
    (tmp_path / "config.toml").write_text("archives = false\n", encoding="utf-8")
    assert load_site_config(tmp_path).archives is False


def test_archives_must_be_a_boolean(tmp_path):
    (tmp_path / "config.toml").write_text('archives = "no"\n', encoding="utf-8")
    with pytest.raises(ConfigParseError, match="archives"):
        load_config(tmp_path)
