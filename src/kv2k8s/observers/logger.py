from __future__ import annotations
import logging
from .events import BaseEvent, WARNING


class LoggerObserver:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        level = logging.WARNING if event.type == WARNING else logging.INFO
        ref = event.involved
        self.logger.log(
            level,
            f"[EVENT] {event.__class__.__name__} {ref.namespace}/{ref.name} "
            f"reason={event.reason}: {event.message()}",
        )
