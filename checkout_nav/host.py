"""Registry for the single screen host that transitions depend on."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from .collaborators import ScreenHost
from .errors import AlreadyInitialized, InvalidHost

logger = logging.getLogger(__name__)


class HostRegistry:
    """Thread-safe, blocking-with-timeout access to the screen host.

    The host is registered once per process. Callers that arrive before
    registration block on a single-fire gate: once the gate opens it stays
    open, even if a later `revalidate()` marks the host stale. Staleness
    changes what `get_host` returns, never whether it blocks.

    Validation comes in two flavours:
    - full: content region and outer container are both present
      (registration, `revalidate()`, and the first access after staleness)
    - quick: content region only (every hot-path `get_host` call)
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._gate = threading.Event()
        self._host: ScreenHost | None = None
        self._initialized = False
        self._validated = False
        self.initialized_at: float | None = None
        self.last_validation_error: str | None = None

    def set_host(self, host: ScreenHost, *, strict: bool = False) -> bool:
        """Register the host and release waiting callers.

        Returns False (and logs a warning) if a host is already registered,
        or raises AlreadyInitialized when `strict` is set.
        Raises InvalidHost if `host` fails full validation.
        """
        if host is None:
            raise InvalidHost("Screen host cannot be None")

        if self._initialized:
            return self._reject_duplicate(strict, "Screen host already registered")

        with self._lock:
            # Double-checked: another thread may have registered meanwhile.
            if self._initialized:
                return self._reject_duplicate(strict, "Screen host registered concurrently")

            if not self._validate_full(host):
                raise InvalidHost(f"Screen host validation failed: {self.last_validation_error}")

            self._host = host
            self._validated = True
            self.initialized_at = self._clock()
            self._initialized = True
            self._gate.set()

        logger.info("Screen host registered (%s)", type(host).__name__)
        return True

    def get_host(self, timeout: float = 10.0) -> ScreenHost | None:
        """Return a validated host, waiting up to `timeout` seconds for registration.

        Returns None on timeout or when the registered host does not validate.
        """
        if not self._initialized:
            logger.info("Waiting up to %.1fs for screen host registration", timeout)
            if not self._gate.wait(timeout=max(0.0, timeout)):
                logger.warning("Timed out waiting for screen host registration")
                return None

        host = self._host
        if host is None:
            return None

        if self._validated:
            if self._validate_quick(host):
                return host
            self._mark_stale()
            return None

        # Stale: pay for a full validation pass before handing it out again.
        if self._validate_full(host):
            self._validated = True
            logger.info("Screen host passed full re-validation")
            return host
        return None

    def get_host_immediate(self) -> ScreenHost | None:
        """Non-blocking: the host if registered and currently validated, else None."""
        if self._initialized and self._validated:
            return self._host
        return None

    def revalidate(self) -> bool:
        """Force a synchronous full validation pass."""
        host = self._host
        if host is None:
            self._validated = False
            logger.warning("No screen host to re-validate")
            return False
        valid = self._validate_full(host)
        self._validated = valid
        logger.info("Screen host re-validation result: %s", valid)
        return valid

    def is_available(self) -> bool:
        return self._initialized and self._validated and self._host is not None

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def is_recently_initialized(self, max_age_seconds: float) -> bool:
        if self.initialized_at is None:
            return False
        return (self._clock() - self.initialized_at) <= max_age_seconds

    def debug_info(self) -> dict[str, Any]:
        return {
            "initialized": self._initialized,
            "validated": self._validated,
            "host": type(self._host).__name__ if self._host is not None else None,
            "initialized_at": self.initialized_at,
            "last_validation_error": self.last_validation_error,
            "gate_open": self._gate.is_set(),
        }

    def _reject_duplicate(self, strict: bool, message: str) -> bool:
        if strict:
            raise AlreadyInitialized(message)
        logger.warning("%s, ignoring duplicate registration", message)
        return False

    def _mark_stale(self) -> None:
        self._validated = False
        logger.warning("Screen host failed quick validation, marked stale")

    def _validate_full(self, host: ScreenHost) -> bool:
        try:
            if host.get_content_region() is None:
                self.last_validation_error = "content region is missing"
                return False
            if host.get_outer_container() is None:
                self.last_validation_error = "outer container is missing"
                return False
        except Exception as e:
            self.last_validation_error = f"validation raised {type(e).__name__}: {e}"
            logger.warning("Screen host validation raised: %s", e)
            return False
        self.last_validation_error = None
        return True

    def _validate_quick(self, host: ScreenHost) -> bool:
        try:
            return host.get_content_region() is not None
        except Exception as e:
            logger.debug("Quick screen host validation raised: %s", e)
            return False
