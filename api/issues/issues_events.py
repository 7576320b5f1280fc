import logging
from typing import Any, Dict
from blinker import signal

logger = logging.getLogger(__name__)

# ------------------------------------------
# Signals
# ------------------------------------------
ISSUE_CREATED = "issue_created"

issue_created = signal(ISSUE_CREATED)


def publish(event_name: str, payload: Dict[str, Any]) -> None:
    """
    Fire-and-forget: send a named signal to whoever listens.
    Receiver failures are logged and never reach the publisher.
    """
    try:
        receivers = signal(event_name).send(None, **payload)
        logger.debug(f"[events] {event_name} delivered to {len(receivers)} receiver(s)")
    except Exception:
        logger.exception(f"[events] receiver failed for {event_name}")
