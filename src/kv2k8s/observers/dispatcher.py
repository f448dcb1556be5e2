# src/kv2k8s/observers/dispatcher.py
from __future__ import annotations
import logging
from typing import List
from .events import BaseEvent
from .interface import Observer

log = logging.getLogger("kv2k8s")


class EventBus:
    def __init__(self, observers: List[Observer] = None):
        self._observers = observers or []

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception:
                # observers must not change the reconcile outcome
                log.warning("observer %s failed on %s", type(ob).__name__, type(event).__name__, exc_info=True)
