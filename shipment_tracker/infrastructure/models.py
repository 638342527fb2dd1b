"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``shipments``  -- one row per tracked shipment; current position and
  destination are flattened into columns
* ``waypoints``  -- the append-only route, ordered by ``seq``

Indexes
-------
* **Unique** on ``shipment_id`` (the generated public identifier is not
  collision-free on its own).
* **B-Tree** on ``status`` and ``created_at`` for the filtered / sorted
  listing, and on ``(shipment_pk, seq)`` for route reads.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from .database import Base
from shipment_tracker.domain.enums import ShipmentStatus


def _status_values(enum_cls):
    return [member.value for member in enum_cls]


class ShipmentModel(Base):
    __tablename__ = "shipments"

    # 24-char hex, the storage-native identifier
    id = Column(String(24), primary_key=True)
    shipment_id = Column(String(32), unique=True, nullable=False)
    container_id = Column(String(64), nullable=False)
    cargo = Column(String(255), nullable=False)
    weight = Column(Float, nullable=False)

    current_name = Column(String(255), nullable=False)
    current_lat = Column(Float, nullable=False)
    current_lng = Column(Float, nullable=False)
    current_timestamp = Column(DateTime(timezone=True), nullable=False)

    destination_name = Column(String(255), nullable=False)
    destination_lat = Column(Float, nullable=False)
    destination_lng = Column(Float, nullable=False)

    status = Column(
        Enum(
            ShipmentStatus,
            name="shipmentstatus",
            values_callable=_status_values,
        ),
        default=ShipmentStatus.PENDING,
        nullable=False,
    )
    estimated_arrival = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    waypoints = relationship(
        "WaypointModel",
        order_by="WaypointModel.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_shipments_status", "status"),
        Index("idx_shipments_created", "created_at"),
    )


class WaypointModel(Base):
    __tablename__ = "waypoints"

    id = Column(Integer, primary_key=True, autoincrement=True)
    shipment_pk = Column(
        String(24), ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False
    )
    seq = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    distance_covered = Column(Float, default=0.0, nullable=False)

    __table_args__ = (
        Index("idx_waypoints_route", "shipment_pk", "seq", unique=True),
    )
