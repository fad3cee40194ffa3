import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml

from config.config import RouterConfig
from core.errors import ConfigurationError
from feedrouter.__main__ import build_feed, build_service, main, parse_args, run_error_mode
from feedrouter.adapters import DummyFeedSource, InMemoryEventStore, YamlTermSource


def _write_config(tmp_path, router_section):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"feedrouter": router_section}))
    return path


class TestParseArgs:

    def test_defaults(self):
        args = parse_args([])
        assert args.config is None
        assert args.metrics_port is None
        assert args.dev is False
        assert args.log_level == "INFO"
        assert args.log_to_stdout is False

    def test_all_flags(self):
        args = parse_args(
            ["--config", "/tmp/c.yaml", "--metrics-port", "9090", "--dev",
             "--log-level", "DEBUG", "--log-to-stdout"]
        )
        assert args.config == Path("/tmp/c.yaml")
        assert args.metrics_port == 9090
        assert args.dev is True
        assert args.log_level == "DEBUG"
        assert args.log_to_stdout is True


class TestBuildFeed:

    def test_dummy_source(self):
        feed = build_feed(RouterConfig(feed={"source": "dummy", "events_per_minute": 30}), dev=False)
        assert isinstance(feed, DummyFeedSource)
        assert feed.interval_seconds == 2.0

    def test_dev_forces_dummy(self):
        assert isinstance(build_feed(RouterConfig(feed={"source": "firehose"}), dev=True), DummyFeedSource)

    @pytest.mark.parametrize("feed", [{}, {"source": "firehose"}])
    def test_unsupported_source_rejected(self, feed):
        with pytest.raises(ConfigurationError, match="Unsupported feed source"):
            build_feed(RouterConfig(feed=feed), dev=False)


def test_build_service_wires_file_sources(tmp_path):
    config = RouterConfig(
        terms_file=str(tmp_path / "terms.yaml"),
        workers_file=str(tmp_path / "workers.yaml"),
        feed={"source": "dummy"},
    )
    service = build_service(config, dev=False)

    assert isinstance(service.term_watcher._term_source, YamlTermSource)
    assert isinstance(service.reclaimer._store, InMemoryEventStore)



async def test_run_error_mode_serves_error_until_shutdown():
    health_server = MagicMock(start=AsyncMock(), stop=AsyncMock())
    shutdown_event = asyncio.Event()
    shutdown_event.set()

    await run_error_mode(health_server, shutdown_event, "bad interval")

    health_server.set_error.assert_called_once_with("bad interval")
    health_server.start.assert_awaited_once()
    health_server.stop.assert_awaited_once()

@pytest.fixture
def patched_process():
    with (
        patch("feedrouter.__main__.load_dotenv"),
        patch("feedrouter.__main__.setup_logging"),
        patch("feedrouter.__main__.setup_signal_handlers") as mock_signals,
        patch("feedrouter.__main__.start_metrics_server", return_value=9000) as mock_metrics,
    ):
        yield MagicMock(signals=mock_signals, metrics=mock_metrics)


class TestMain:

    def test_runs_service_until_shutdown(self, tmp_path, patched_process):
        path = _write_config(tmp_path, {"feed": {"source": "dummy"}, "metrics": {"port": 9000}})
        service = MagicMock()
        service.run = AsyncMock()

        with patch("feedrouter.__main__.build_service", return_value=service) as mock_build:
            assert main(["--config", str(path)]) == 0

        service.run.assert_awaited_once()
        assert mock_build.call_args.args[1] is False
        patched_process.metrics.assert_called_once_with(9000)
        patched_process.signals.assert_called_once()

    def test_metrics_port_flag_overrides_config(self, tmp_path, patched_process):
        path = _write_config(tmp_path, {"feed": {"source": "dummy"}})
        service = MagicMock()
        service.run = AsyncMock()

        with patch("feedrouter.__main__.build_service", return_value=service):
            main(["--config", str(path), "--metrics-port", "9191", "--dev"])

        patched_process.metrics.assert_called_once_with(9191)

    def test_configuration_error_enters_error_mode(self, tmp_path, patched_process):
        path = _write_config(tmp_path, {"intervals": {"stats_seconds": 0}})

        with patch("feedrouter.__main__.run_error_mode", new=AsyncMock()) as mock_error_mode:
            assert main(["--config", str(path)]) == 1

        error_msg = mock_error_mode.await_args.args[2]
        assert "stats_seconds" in error_msg
        patched_process.metrics.assert_not_called()

    def test_unsupported_feed_enters_error_mode(self, tmp_path, patched_process):
        path = _write_config(tmp_path, {"feed": {"source": "firehose"}})

        with patch("feedrouter.__main__.run_error_mode", new=AsyncMock()) as mock_error_mode:
            assert main(["--config", str(path)]) == 1

        assert "Unsupported feed source" in mock_error_mode.await_args.args[2]
