"""Domain enums for the trade journal."""

from enum import Enum


class OperationStatus(str, Enum):
    """Lifecycle state of a trade operation."""
    OPEN = "open"
    CLOSED = "closed"

    @property
    def label(self) -> str:
        _labels = {
            "open": "Abierta",
            "closed": "Cerrada",
        }
        return _labels[self.value]
