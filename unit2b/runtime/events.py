"""Status, listening and processing notifications published by the session."""

from __future__ import annotations

from typing import Protocol

from unit2b.core.logger import get_logger

logger = get_logger("session")


class SessionObserver(Protocol):
    def on_status(self, message: str) -> None: ...

    def on_listening_changed(self, listening: bool) -> None: ...

    def on_processing_changed(self, processing: bool) -> None: ...


class LoggingObserver:
    """Observer always attached to the bus: every event ends up in the logs."""

    def on_status(self, message: str) -> None:
        logger.info("Status: %s", message)

    def on_listening_changed(self, listening: bool) -> None:
        logger.info("Listening: %s", listening)

    def on_processing_changed(self, processing: bool) -> None:
        logger.debug("Processing: %s", processing)


class EventBus:
    """Fan-out of session events to the subscribed observers."""

    def __init__(self) -> None:
        self._observers: list[SessionObserver] = [LoggingObserver()]
        self.last_status: str | None = None
        self.listening = False
        self.processing = False

    def subscribe(self, observer: SessionObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: SessionObserver) -> None:
        if observer in self._observers and not isinstance(observer, LoggingObserver):
            self._observers.remove(observer)

    def status(self, message: str) -> None:
        self.last_status = message
        self._publish("on_status", message)

    def listening_changed(self, listening: bool) -> None:
        self.listening = listening
        self._publish("on_listening_changed", listening)

    def processing_changed(self, processing: bool) -> None:
        self.processing = processing
        self._publish("on_processing_changed", processing)

    def _publish(self, method: str, value: object) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, method)(value)
            except Exception:
                logger.exception("Observer %r failed on %s", observer, method)
