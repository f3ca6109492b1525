import dataclasses
import logging
import threading

from board_features.spatial_filter import Bounds

logger = logging.getLogger(__name__)


class BoundsStore:
    """
    Thread-safe holder of the experimental region bounds.

    Updates are validated before they replace the current value; readers take
    a snapshot at the start of a cycle and never hold the lock while filtering.
    """

    def __init__(self, bounds: Bounds) -> None:
        self._lock = threading.Lock()
        self._bounds = bounds

    def snapshot(self) -> Bounds:
        with self._lock:
            return self._bounds

    def set(self, bounds: Bounds) -> None:
        if not isinstance(bounds, Bounds):
            raise TypeError(f"Expected Bounds, got {type(bounds).__name__}")
        with self._lock:
            self._bounds = bounds
        logger.info(f"Reconfigure request: {bounds.as_tuple()}")

    def update(self, **fields: float) -> Bounds:
        """
        Replace some of the six limits; raises ValueError (and keeps the old
        bounds) if the result is invalid or a field name is unknown.
        """
        with self._lock:
            try:
                bounds = dataclasses.replace(self._bounds, **{k: float(v) for k, v in fields.items()})
            except TypeError as e:
                raise ValueError(f"Unknown bounds field: {e}") from None
            self._bounds = bounds
        logger.info(f"Reconfigure request: {bounds.as_tuple()}")
        return bounds
