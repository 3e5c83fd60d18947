"""Tests for the high-level API."""

import random
from unittest.mock import Mock, patch

import pytest

from cfrok import InvalidArgumentError, build_config, managed_tunnel, start_tunnel
from cfrok.tunnel.models import Protocol, SessionConfig


class TestBuildConfig:
    """Test build_config function."""

    def test_builds_config(self):
        config = build_config(port=3000, subdomain_prefix="api", protocol="tcp")

        assert isinstance(config, SessionConfig)
        assert config.protocol is Protocol.TCP

    def test_invalid_options(self):
        """Validation errors surface as InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError, match="Invalid tunnel options: port"):
            build_config(port=70000, subdomain_prefix="api")

    def test_missing_prefix(self):
        with pytest.raises(InvalidArgumentError, match="subdomain_prefix"):
            build_config(port=3000)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            build_config(port=0, subdomain_prefix="api")


class TestStartTunnel:
    """Test start_tunnel function."""

    @patch("cfrok.api.TunnelSession")
    def test_start_tunnel_from_options(self, mock_session_cls):
        started = Mock(url="https://api-1234.dreamteamit.xyz")
        mock_session_cls.return_value.start.return_value = started
        reporter = Mock()
        rng = random.Random(1)

        result = start_tunnel(
            port=3000, subdomain_prefix="api", reporter=reporter, rng=rng
        )

        assert result is started
        config = mock_session_cls.call_args.args[0]
        assert config.port == 3000
        assert config.subdomain_prefix == "api"
        assert mock_session_cls.call_args.kwargs == {"reporter": reporter, "rng": rng}

    @patch("cfrok.api.TunnelSession")
    def test_start_tunnel_from_config(self, mock_session_cls):
        config = SessionConfig(port=8080, subdomain_prefix="web")

        start_tunnel(config)

        assert mock_session_cls.call_args.args[0] is config

    def test_config_and_options_are_exclusive(self):
        config = SessionConfig(port=8080, subdomain_prefix="web")

        with pytest.raises(TypeError):
            start_tunnel(config, port=9000)

    def test_invalid_options_fail_before_start(self):
        with patch("cfrok.api.TunnelSession") as mock_session_cls:
            with pytest.raises(InvalidArgumentError):
                start_tunnel(port=-1, subdomain_prefix="api")

        mock_session_cls.assert_not_called()


class TestManagedTunnel:
    """Test managed_tunnel context manager."""

    @patch("cfrok.api.TunnelSession")
    def test_stops_on_exit(self, mock_session_cls):
        started = Mock()
        mock_session_cls.return_value.start.return_value = started

        with managed_tunnel(port=3000, subdomain_prefix="api") as tunnel:
            assert tunnel is started
            started.stop.assert_not_called()

        started.stop.assert_called_once()

    @patch("cfrok.api.TunnelSession")
    def test_stops_on_error(self, mock_session_cls):
        started = Mock()
        mock_session_cls.return_value.start.return_value = started

        with pytest.raises(RuntimeError):
            with managed_tunnel(port=3000, subdomain_prefix="api"):
                raise RuntimeError("app crashed")

        started.stop.assert_called_once()
