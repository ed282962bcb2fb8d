"""
Tests for app.config - configuration loading functionality
Tests port list parsing, host resolution, and the flag > env > file > default precedence.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from app.config import Config, _get, _resolve_base_dir, load_config, parse_ports, resolve_host


@pytest.fixture
def clean_env():
    """drop any CONNTRACK_* variables and point the config file somewhere empty"""
    env = {k: v for k, v in os.environ.items() if not k.startswith("CONNTRACK_")}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestParsePorts:
    """Tests for parse_ports"""

    def test_parse_ports_basic(self):
        assert parse_ports("4317,4318") == frozenset({4317, 4318})

    def test_parse_ports_trims_whitespace(self):
        assert parse_ports(" 80 , 443 ,") == frozenset({80, 443})

    def test_parse_ports_drops_invalid_tokens(self):
        """Test that bad tokens are dropped instead of failing the whole list"""
        assert parse_ports("80,http,70000,-1,443,8.5") == frozenset({80, 443})

    def test_parse_ports_all_invalid(self):
        assert parse_ports("abc,def") == frozenset()

    def test_parse_ports_list_input(self):
        assert parse_ports([80, "443", "bad"]) == frozenset({80, 443})

    def test_parse_ports_none(self):
        assert parse_ports(None) == frozenset()

    def test_parse_ports_bounds(self):
        assert parse_ports("0,65535,65536") == frozenset({0, 65535})

    def test_parse_ports_is_immutable(self):
        assert isinstance(parse_ports("80"), frozenset)

    def test_parse_ports_single_integer(self):
        """Test that a lone number (as a JSON config may give) is one port"""
        assert parse_ports(6789) == frozenset({6789})

    def test_parse_ports_rejects_underscores_and_non_ascii_digits(self):
        assert parse_ports("1_000,٨٠,443") == frozenset({443})

    def test_parse_ports_accepts_leading_plus(self):
        assert parse_ports("+80") == frozenset({80})

    def test_parse_ports_ignores_booleans_and_nulls(self):
        assert parse_ports([True, None, 22]) == frozenset({22})


class TestResolveHost:
    def test_resolve_host_uses_hostname(self):
        with patch("app.config.socket.gethostname", return_value="node-1"):
            assert resolve_host() == "node-1"

    def test_resolve_host_failure_defaults_empty(self):
        with patch("app.config.socket.gethostname", side_effect=OSError("no name")):
            assert resolve_host() == ""


class TestGet:
    """Tests for _get helper function"""

    def test_get_from_env_float(self, clean_env):
        with patch.dict(os.environ, {"CONNTRACK_INTERVAL": "2.5"}):
            assert _get({}, "interval", 10.0) == 2.5

    def test_get_invalid_env_number_uses_default(self, clean_env):
        with patch.dict(os.environ, {"CONNTRACK_SERVE_PORT": "not_a_number"}):
            assert _get({"serve_port": 1}, "serve_port", 0) == 0

    def test_get_env_bool(self, clean_env):
        with patch.dict(os.environ, {"CONNTRACK_ONCE": "yes"}):
            assert _get({}, "once", False) is True

    def test_get_from_json_when_env_missing(self, clean_env):
        assert _get({"topic": "t"}, "topic", None) == "t"

    def test_get_default(self, clean_env):
        assert _get({}, "topic", "fallback") == "fallback"


class TestLoadConfig:
    """Tests for load_config"""

    def test_defaults(self, clean_env, tmp_path):
        with patch("app.config.resolve_host", return_value="node-1"):
            cfg = load_config(config_file=str(tmp_path / "missing.json"))
        assert isinstance(cfg, Config)
        assert cfg.ports == frozenset()
        assert cfg.ports_given is False
        assert cfg.output is None and cfg.broker is None and cfg.topic is None
        assert cfg.interval == 10.0
        assert cfg.tcp4_path == "/proc/net/tcp"
        assert cfg.tcp6_path == "/proc/net/tcp6"
        assert cfg.host == "node-1"
        assert cfg.serve_port == 0
        assert cfg.log_level == "WARNING"
        assert cfg.once is False

    def test_file_values(self, clean_env, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"ports": [80, 443], "output": "/tmp/out.json", "interval": 5, "host": "box"}),
            encoding="utf-8",
        )
        cfg = load_config(config_file=str(path))
        assert cfg.ports == frozenset({80, 443})
        assert cfg.ports_given is True
        assert cfg.output == "/tmp/out.json"
        assert cfg.interval == 5.0
        assert cfg.host == "box"

    def test_env_beats_file(self, clean_env, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"ports": "80", "topic": "file-topic"}), encoding="utf-8")
        with patch.dict(os.environ, {"CONNTRACK_PORTS": "22,443", "CONNTRACK_TOPIC": "env-topic"}):
            cfg = load_config(config_file=str(path))
        assert cfg.ports == frozenset({22, 443})
        assert cfg.topic == "env-topic"

    def test_overrides_beat_env(self, clean_env, tmp_path):
        with patch.dict(os.environ, {"CONNTRACK_PORTS": "22", "CONNTRACK_OUTPUT": "/env.json"}):
            cfg = load_config(
                {"ports": "8080", "output": None}, config_file=str(tmp_path / "none.json")
            )
        assert cfg.ports == frozenset({8080})
        assert cfg.output == "/env.json"  # None override falls through

    def test_config_file_from_env(self, clean_env, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps({"broker": "kafka:9092"}), encoding="utf-8")
        with patch.dict(os.environ, {"CONNTRACK_CONFIG": str(path)}):
            assert load_config().broker == "kafka:9092"

    def test_broken_json_uses_defaults(self, clean_env, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        cfg = load_config({"host": "h"}, config_file=str(path))
        assert cfg.interval == 10.0
        assert cfg.ports_given is False

    def test_non_object_json_uses_defaults(self, clean_env, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config({"host": "h"}, config_file=str(path)).ports == frozenset()

    def test_bad_interval_in_file_raises(self, clean_env, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"interval": "soon"}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_config({"host": "h"}, config_file=str(path))

    def test_log_level_uppercased(self, clean_env, tmp_path):
        cfg = load_config({"log_level": "debug", "host": "h"}, config_file=str(tmp_path / "x"))
        assert cfg.log_level == "DEBUG"

    def test_config_is_frozen(self, clean_env, tmp_path):
        cfg = load_config({"host": "h"}, config_file=str(tmp_path / "x"))
        with pytest.raises(AttributeError):
            cfg.host = "other"  # type: ignore[misc]


class TestResolveBaseDir:
    def test_resolve_base_dir_normal(self):
        with patch("sys.frozen", False, create=True):
            assert _resolve_base_dir() == Path(__file__).resolve().parents[1]
