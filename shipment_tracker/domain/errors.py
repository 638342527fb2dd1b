"""Errors raised by the tracking core and the service around it."""


class TrackingError(Exception):
    """Base class for every error the API maps to a 4xx response."""


class InvalidInput(TrackingError):
    """Missing or malformed coordinates, required fields or status values."""


class ShipmentNotFound(TrackingError):
    def __init__(self, identifier: str):
        super().__init__(f"Shipment not found: {identifier}")
        self.identifier = identifier


class TerminalStateViolation(TrackingError):
    """Raised when a delivered shipment receives another location report."""


class ShipmentBusy(TrackingError):
    """Another request holds the shipment's lock."""


class InvalidStateTransition(TrackingError):
    """Raised when a status change violates the state machine."""
