"""Broker selection for the ledger sweep actor.

Dramatiq needs a broker before an actor body runs. Deployments configure a
RabbitMQ broker; local runs and tests may fall back to an in-memory
``StubBroker`` when ``GHRELAY_ALLOW_STUB_BROKER`` is set or pytest is loaded.
"""

from __future__ import annotations

import os
import sys
import threading
import typing as typ

import dramatiq
from dramatiq.brokers.stub import StubBroker

if typ.TYPE_CHECKING:
    from dramatiq import Broker

_BROKER_LOCK = threading.Lock()
_broker_configured = False

_TRUTHY = frozenset({"1", "true", "yes"})
_PYTEST_ENV_VARS = ("PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS")


def _is_running_tests() -> bool:
    if "pytest" in sys.modules:
        return True
    return any(name in os.environ for name in _PYTEST_ENV_VARS)


def stub_broker_allowed() -> bool:
    """Return whether an in-memory broker is acceptable here."""
    opt_in = os.environ.get("GHRELAY_ALLOW_STUB_BROKER", "").strip().lower()
    return opt_in in _TRUTHY or _is_running_tests()


def _current_broker() -> Broker | None:
    try:
        return dramatiq.get_broker()
    except (ImportError, LookupError):
        # The default RabbitMQ broker needs its extras and a reachable host.
        return None


def _install_stub_broker() -> None:
    if not stub_broker_allowed():
        message = (
            "ledger sweep has no Dramatiq broker; configure one or set "
            "GHRELAY_ALLOW_STUB_BROKER=1 for local runs"
        )
        raise RuntimeError(message)
    dramatiq.set_broker(StubBroker())


def ensure_broker_configured() -> None:
    """Make sure a broker is installed, falling back to a stub if allowed.

    Raises
    ------
    RuntimeError
        If no broker exists and the stub fallback is not permitted.

    """
    global _broker_configured  # noqa: PLW0603

    with _BROKER_LOCK:
        if _broker_configured:
            return
        if _current_broker() is None:
            _install_stub_broker()
        _broker_configured = True
