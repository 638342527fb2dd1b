"""Domain enumerations and state-transition rules."""

import enum


class ShipmentStatus(str, enum.Enum):
    PENDING = "pending"
    IN_TRANSIT = "in-transit"
    DELAYED = "delayed"
    DELIVERED = "delivered"


# Transitions reachable through location reports.  A forced status change
# bypasses this table entirely.
SHIPMENT_TRANSITIONS: dict[ShipmentStatus, set[ShipmentStatus]] = {
    ShipmentStatus.PENDING: {
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.DELIVERED,
    },
    ShipmentStatus.IN_TRANSIT: {
        ShipmentStatus.DELAYED,
        ShipmentStatus.DELIVERED,
    },
    ShipmentStatus.DELAYED: {ShipmentStatus.DELIVERED},
    ShipmentStatus.DELIVERED: set(),
}


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"
