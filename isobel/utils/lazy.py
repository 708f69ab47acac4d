"""
Isobel Dashboard - Init-Once Holder
===================================

Process-wide lazy singletons with an explicit init/teardown contract.

DESIGN:
    Every long-lived object (config, database, app, auth handler, HTTP
    session) lives in an InitOnce holder instead of a nullable module
    global. The first caller runs the factory under a lock; every later
    caller gets the same instance. reset() hands the instance back so the
    owner can close it, and the next get() builds a fresh one.

Usage:
    _db: InitOnce[DatabaseManager] = InitOnce("Database", DatabaseManager)

    db = _db.get()
    ...
    old = _db.reset()
    if old is not None:
        old.close()
"""

import threading
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class InitOnce(Generic[T]):
    """Lazy holder guarded by a one-shot latch."""

    def __init__(self, name: str, factory: Optional[Callable[[], T]] = None) -> None:
        self._name = name
        self._factory = factory
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._initialized = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_initialized(self) -> bool:
        """Whether the factory has already produced an instance."""
        return self._initialized

    def init(self, factory: Optional[Callable[[], T]] = None) -> T:
        """
        Build the instance if needed and return it.

        Args:
            factory: Overrides the default factory for this first build.
                Ignored when the holder is already initialized.

        Raises:
            RuntimeError: If no factory is available.
        """
        if self._initialized:
            return self._value

        with self._lock:
            if not self._initialized:
                build = factory or self._factory
                if build is None:
                    raise RuntimeError(f"{self._name} is not initialized")
                # A failing factory leaves the latch open so the next call retries
                self._value = build()
                self._initialized = True

        return self._value

    def get(self) -> T:
        """Return the instance, building it with the default factory."""
        return self.init()

    def reset(self) -> Optional[T]:
        """
        Clear the holder and return the previous instance (if any).

        The caller owns the returned object and is responsible for
        closing it.
        """
        with self._lock:
            value = self._value
            self._value = None
            self._initialized = False
        return value


__all__ = ["InitOnce"]
