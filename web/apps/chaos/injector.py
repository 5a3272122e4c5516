"""Process-wide fault injection toggle.

``FaultInjector`` is the switch the experiments flip at runtime: while it is
enabled, calls routed through a ``FaultInjectingProxy`` are attacked with
a probability of ``1 / level``. An attacked call either stalls for a random
latency within the configured range or raises ``ChaosException``, depending
on which assaults are active. The core services never consult the toggle
themselves; they only have to stay correct while it is on.
"""

import logging
import random
import threading
import time
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Callable, Optional

logger = logging.getLogger("chaos")


class ChaosException(RuntimeError):
    """Exception raised by the exception assault."""


@dataclass(frozen=True)
class AssaultConfig:
    """Attack settings.

    Attributes:
        level: Attack one call in ``level`` on average (1 attacks every call).
        latency_range_start: Minimum injected latency, in ms.
        latency_range_end: Maximum injected latency, in ms.
        latency_active: Whether the latency assault may be picked.
        exceptions_active: Whether the exception assault may be picked.
    """

    level: int = 5
    latency_range_start: int = 1000
    latency_range_end: int = 3000
    latency_active: bool = True
    exceptions_active: bool = True

    def __post_init__(self):
        if self.level < 1:
            raise ValueError("level must be >= 1")
        if self.latency_range_start < 0 or self.latency_range_end < self.latency_range_start:
            raise ValueError("invalid latency range")


QUICK_TEST_CONFIG = AssaultConfig(
    level=6, latency_range_start=1500, latency_range_end=4000, latency_active=True, exceptions_active=True
)


class FaultInjector:
    """Thread-safe on/off switch plus assault configuration."""

    def __init__(
        self,
        config: Optional[AssaultConfig] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._lock = threading.Lock()
        self._enabled = False
        self._config = config or AssaultConfig()
        self._rng = rng or random.Random()
        self._sleep = sleep
        self.attacks = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def config(self) -> AssaultConfig:
        return self._config

    def enable(self):
        with self._lock:
            self._enabled = True
        logger.warning("fault injection enabled", extra={"level": self._config.level})

    def disable(self):
        with self._lock:
            self._enabled = False
        logger.info("fault injection disabled")

    def configure(self, config: AssaultConfig):
        with self._lock:
            self._config = config
        logger.info("fault injection reconfigured", extra=asdict(config))

    def status(self) -> dict:
        return {"enabled": self._enabled, "attacks": self.attacks, "config": asdict(self._config)}

    def maybe_attack(self, target: str) -> None:
        """Attack the call about to be made to ``target``, or do nothing.

        Raises:
            ChaosException: When the exception assault is picked.
        """
        with self._lock:
            if not self._enabled:
                return
            config = self._config
            if self._rng.random() >= 1.0 / config.level:
                return
            assaults = []
            if config.latency_active:
                assaults.append("latency")
            if config.exceptions_active:
                assaults.append("exception")
            if not assaults:
                return
            assault = self._rng.choice(assaults)
            latency_ms = self._rng.randint(config.latency_range_start, config.latency_range_end)
            self.attacks += 1

        if assault == "latency":
            logger.warning("injecting latency", extra={"target": target, "latency_ms": latency_ms})
            self._sleep(latency_ms / 1000.0)
            return
        logger.warning("injecting exception", extra={"target": target})
        raise ChaosException(f"Chaos Monkey - RuntimeException ({target})")


class FaultInjectingProxy:
    """Wrap an object so each public method call passes through the injector."""

    def __init__(self, target, injector: FaultInjector, name: str):
        self._target = target
        self._injector = injector
        self._name = name

    @property
    def target(self):
        return self._target

    def __getattr__(self, attr):
        value = getattr(self._target, attr)
        if attr.startswith("_") or not callable(value):
            return value

        def attacked(*args, **kwargs):
            self._injector.maybe_attack(f"{self._name}.{attr}")
            return value(*args, **kwargs)

        return attacked


@lru_cache(maxsize=1)
def get_fault_injector() -> FaultInjector:
    """Return the process-wide injector."""
    return FaultInjector()
