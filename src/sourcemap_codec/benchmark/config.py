"""Benchmark run settings, from defaults, environment and command line."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import replace
from typing import Any

ENV_PREFIX = "SOURCEMAP_BENCH_"

OPERATIONS = ("decode", "encode")
ORDERS = ("listing", "sorted")
JSON_BACKENDS = ("orjson", "ujson")

_TRUTHY = frozenset(("1", "true", "yes", "on"))


@dataclass(frozen=True)
class BenchConfig:
    """
    Configures a corpus run with immutable settings.

    ``order`` is ``listing`` to keep raw directory order or ``sorted`` for
    lexicographic order. An empty ``candidates`` tuple selects every
    registered candidate.
    """

    extension: str = ".map"
    order: str = "listing"
    json_backend: str = "orjson"
    collect_garbage: bool = True
    min_time: float = 0.5
    min_samples: int = 5
    calibration_time: float = 0.01
    candidates: tuple[str, ...] = ()
    operations: tuple[str, ...] = OPERATIONS
    strict: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.extension, str) or not self.extension:
            raise ValueError("extension must be a non-empty string")
        if self.order not in ORDERS:
            raise ValueError(f"order must be one of {', '.join(ORDERS)}")
        if self.json_backend not in JSON_BACKENDS:
            raise ValueError(
                f"json_backend must be one of {', '.join(JSON_BACKENDS)}"
            )
        if not isinstance(self.collect_garbage, bool):
            raise TypeError("collect_garbage must be a boolean")
        if self.min_time < 0:
            raise ValueError("min_time must not be negative")
        if self.min_samples < 1:
            raise ValueError("min_samples must be at least 1")
        if self.calibration_time < 0:
            raise ValueError("calibration_time must not be negative")
        unknown = set(self.operations) - set(OPERATIONS)
        if unknown or not self.operations:
            raise ValueError(
                "operations must be a non-empty subset of "
                + ", ".join(OPERATIONS)
            )

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: Any
    ) -> "BenchConfig":
        """
        Builds a config from ``SOURCEMAP_BENCH_*`` variables.

        Keyword overrides win over the environment; None values are ignored
        so unset command line options fall through.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        if extension := environ.get(f"{ENV_PREFIX}EXTENSION"):
            values["extension"] = extension
        if order := environ.get(f"{ENV_PREFIX}ORDER"):
            values["order"] = order
        if backend := environ.get(f"{ENV_PREFIX}JSON_BACKEND"):
            values["json_backend"] = backend
        if no_gc := environ.get(f"{ENV_PREFIX}NO_GC"):
            values["collect_garbage"] = no_gc.lower() not in _TRUTHY
        if min_time := environ.get(f"{ENV_PREFIX}MIN_TIME"):
            try:
                values["min_time"] = float(min_time)
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}MIN_TIME must be a number, got {min_time!r}"
                ) from None

        values.update(
            {key: val for key, val in overrides.items() if val is not None}
        )
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "BenchConfig":
        return replace(self, **overrides)
