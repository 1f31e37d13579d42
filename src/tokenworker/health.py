"""Self-test run on ``runHealthCheck``."""

from __future__ import annotations

from collections.abc import Callable

from tokenworker.logging import get_logger
from tokenworker.protocol.codec import decode_client_message, encode_message
from tokenworker.protocol.messages import Echo
from tokenworker.protocol.types import Theme
from tokenworker.tokenizer import RegexTokenizer

log = get_logger("health")

HEALTH_CHECK_SUCCESS = 0
HEALTH_CHECK_FAILURE = 1

HealthCheck = Callable[[], int]

_SAMPLE = "def check(): return 42  # ok"


def run_health_check() -> int:
    """Exercise the tokenizer and the codec once.

    Returns:
        ``HEALTH_CHECK_SUCCESS`` when both behave, ``HEALTH_CHECK_FAILURE``
        otherwise.
    """
    try:
        tokens = RegexTokenizer().tokenize_line(
            "source.python", _SAMPLE, theme=Theme(), configuration={}
        )
        if not any(t.scope.startswith("keyword") for t in tokens):
            log.warning("Health check: no keyword tokens in sample line")
            return HEALTH_CHECK_FAILURE

        echoed = decode_client_message(encode_message(Echo(message="health")))
        if not isinstance(echoed, Echo) or echoed.message != "health":
            log.warning("Health check: codec round trip failed")
            return HEALTH_CHECK_FAILURE
    except Exception as e:
        log.warning("Health check failed: %s", e)
        return HEALTH_CHECK_FAILURE

    return HEALTH_CHECK_SUCCESS
