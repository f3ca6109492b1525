import logging
import threading
from enum import IntEnum

logger = logging.getLogger(__name__)


class SampleOperation(IntEnum):
    CAPTURE = 1
    DISCARD = 2


class CaptureTrigger:
    """
    One-shot capture flag shared between the trigger source and the pipeline.

    request(CAPTURE) arms the flag, request(DISCARD) clears it; the pipeline
    calls consume() once per cycle, which reads and clears under the lock so a
    single request is processed exactly once even when cycles are slow.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._armed = False

    def request(self, operation: SampleOperation) -> bool:
        operation = SampleOperation(operation)
        with self._lock:
            if operation is SampleOperation.CAPTURE:
                logger.info("Capturing sample")
                self._armed = True
            else:
                logger.info("Discarding last sample")
                self._armed = False
        return True

    def consume(self) -> bool:
        with self._lock:
            armed = self._armed
            self._armed = False
        return armed

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._armed
