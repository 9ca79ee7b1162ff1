from time import sleep

import pytest
from pydantic import ValidationError

from cipherbench import config
from cipherbench.domain.models import RunConfig, RunMetrics, parse_pool_sizes
from cipherbench.utils import profiler

DEFAULT_KDF_ITERATIONS = 256_000
DEFAULT_PAYLOAD_BYTES = 512 * 1024


def _config(**overrides) -> RunConfig:
    values = {"pool_size": 1, "db_path": ":memory:", "db_key": "k"}
    values.update(overrides)
    return RunConfig(**values)


def test_settings_defaults(monkeypatch):
    for name in ("DB_KDF_ITERATIONS", "BENCHMARK_PAYLOAD_BYTES", "BENCHMARK_CHECKOUT_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    settings = config.Settings(_env_file=None)
    assert settings.db_kdf_iterations == DEFAULT_KDF_ITERATIONS
    assert settings.benchmark_payload_bytes == DEFAULT_PAYLOAD_BYTES
    assert settings.benchmark_checkout_timeout is None
    assert settings.benchmark_max_workers > 0


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("BENCHMARK_POOL_SIZES", "1,2,4")
    monkeypatch.setenv("BENCHMARK_WRITE_ON_DEDICATED_CHANNEL", "1")
    settings = config.Settings(_env_file=None)
    assert settings.benchmark_pool_sizes == "1,2,4"
    assert settings.benchmark_write_on_dedicated_channel is True


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", [1]), ("1,2,3", [1, 2, 3]), (" 4, 8 ,16", [4, 8, 16])],
)
def test_parse_pool_sizes(raw, expected):
    assert parse_pool_sizes(raw) == expected


@pytest.mark.parametrize("raw", ["", "1,,2", "a", "0", "2,-1", "1.5"])
def test_parse_pool_sizes_rejects_invalid_entries(raw):
    with pytest.raises(ValueError):
        parse_pool_sizes(raw)


def test_single_handle_policy():
    cfg = _config(pool_size=1)
    assert cfg.writes_on_shared_handle is True
    assert cfg.reads_on_shared_handle is True
    assert cfg.opens_shared_handle is True
    assert cfg.pooled_handle_count == 0


def test_single_handle_policy_ignores_dedicated_flag():
    cfg = _config(pool_size=1, write_on_dedicated_channel=True)
    assert cfg.pooled_handle_count == 0
    assert cfg.opens_shared_handle is True


def test_pooled_policy():
    cfg = _config(pool_size=4)
    assert cfg.writes_on_shared_handle is False
    assert cfg.reads_on_shared_handle is False
    assert cfg.opens_shared_handle is False
    assert cfg.pooled_handle_count == 4


def test_dedicated_write_channel_policy():
    cfg = _config(pool_size=4, write_on_dedicated_channel=True)
    assert cfg.writes_on_shared_handle is True
    assert cfg.reads_on_shared_handle is False
    assert cfg.pooled_handle_count == 3
    assert cfg.pooled_handle_count + int(cfg.opens_shared_handle) == cfg.pool_size


def test_run_config_is_frozen():
    cfg = _config()
    with pytest.raises(ValidationError):
        cfg.pool_size = 2


@pytest.mark.parametrize("field", [{"pool_size": 0}, {"writes": -1}, {"checkout_timeout": 0}])
def test_run_config_rejects_out_of_range_values(field):
    with pytest.raises(ValidationError):
        _config(**field)


def test_run_config_from_settings_applies_overrides():
    settings = config.Settings(_env_file=None, db_path="file:x.db", benchmark_writes=7)
    cfg = RunConfig.from_settings(settings, pool_size=3, reads=11)
    assert cfg.pool_size == 3
    assert cfg.db_path == "file:x.db"
    assert cfg.writes == 7
    assert cfg.reads == 11


def test_run_metrics_defaults_allow_error_only_entries():
    metrics = RunMetrics(pool_size=2, error="boom")
    assert metrics.queries_per_second == 0.0
    assert metrics.model_dump()["error"] == "boom"


def test_profile_block_measures_time():
    with profiler.profile_block("sleep") as stats:
        sleep(0.05)
    assert stats.duration_seconds >= 0.05
    assert stats.peak_rss_bytes is None or stats.peak_rss_bytes > 0
    if stats.cpu_percent is not None:
        assert isinstance(stats.cpu_percent, float)
