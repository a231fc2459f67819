"""
Benchmark configuration tests.
"""

import pytest

from sourcemap_codec.benchmark import BenchConfig


def test_defaults() -> None:
    """
    Validates the default settings.
    """
    config = BenchConfig()

    assert config.extension == ".map"
    assert config.order == "listing"
    assert config.json_backend == "orjson"
    assert config.collect_garbage is True
    assert config.candidates == ()
    assert config.operations == ("decode", "encode")
    assert config.strict is False


@pytest.mark.parametrize(
    "options",
    [
        {"extension": ""},
        {"order": "newest"},
        {"json_backend": "json"},
        {"min_time": -0.5},
        {"min_samples": 0},
        {"calibration_time": -1},
        {"operations": ()},
        {"operations": ("decode", "parse")},
    ],
)
def test_invalid_values(options: dict) -> None:
    """
    Validates rejection of invalid settings.
    """
    with pytest.raises(ValueError):
        BenchConfig(**options)


def test_collect_garbage_must_be_bool() -> None:
    """
    Validates collect_garbage only accepts booleans.
    """
    with pytest.raises(TypeError):
        BenchConfig(collect_garbage="no")  # type: ignore[arg-type]


def test_from_env() -> None:
    """
    Validates settings read from SOURCEMAP_BENCH_ variables.
    """
    config = BenchConfig.from_env(
        {
            "SOURCEMAP_BENCH_EXTENSION": ".json",
            "SOURCEMAP_BENCH_ORDER": "sorted",
            "SOURCEMAP_BENCH_JSON_BACKEND": "ujson",
            "SOURCEMAP_BENCH_NO_GC": "1",
            "SOURCEMAP_BENCH_MIN_TIME": "0.25",
        }
    )

    assert config.extension == ".json"
    assert config.order == "sorted"
    assert config.json_backend == "ujson"
    assert config.collect_garbage is False
    assert config.min_time == 0.25


@pytest.mark.parametrize("value,expected", [("0", True), ("TRUE", False)])
def test_from_env_no_gc(value: str, expected: bool) -> None:
    """
    Validates only truthy NO_GC values disable collection.
    """
    config = BenchConfig.from_env({"SOURCEMAP_BENCH_NO_GC": value})

    assert config.collect_garbage is expected


def test_from_env_bad_number() -> None:
    """
    Validates a non-numeric MIN_TIME is reported.
    """
    with pytest.raises(ValueError, match="MIN_TIME"):
        BenchConfig.from_env({"SOURCEMAP_BENCH_MIN_TIME": "fast"})


def test_overrides_win() -> None:
    """
    Validates keyword overrides beat the environment and None is ignored.
    """
    config = BenchConfig.from_env(
        {"SOURCEMAP_BENCH_ORDER": "sorted", "SOURCEMAP_BENCH_MIN_TIME": "2"},
        order="listing",
        min_time=None,
    )

    assert config.order == "listing"
    assert config.min_time == 2.0


def test_from_env_reads_process_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """
    Validates the process environment is used by default.
    """
    monkeypatch.setenv("SOURCEMAP_BENCH_EXTENSION", ".srcmap")

    assert BenchConfig.from_env().extension == ".srcmap"


def test_with_overrides() -> None:
    """
    Validates a modified copy leaves the original untouched.
    """
    config = BenchConfig()
    changed = config.with_overrides(strict=True, candidates=("indexed",))

    assert changed.strict is True
    assert changed.candidates == ("indexed",)
    assert config.strict is False
