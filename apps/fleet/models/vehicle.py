import logging
from datetime import UTC, datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import Boolean, Column, DateTime, Enum, Float, Integer, String, Text, func
from sqlalchemy.orm import Session

from apps.fleet.models import VehicleStatus, VehicleType
from core.mixins.orm import ORMBaseMixin
from db import Base

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (VehicleStatus.dispatched, VehicleStatus.in_transit)

# status -> statuses it may move to
ALLOWED_TRANSITIONS = {
    VehicleStatus.idle: {VehicleStatus.dispatched, VehicleStatus.maintenance},
    VehicleStatus.dispatched: {VehicleStatus.in_transit, VehicleStatus.returning, VehicleStatus.idle},
    VehicleStatus.in_transit: {VehicleStatus.returning, VehicleStatus.idle},
    VehicleStatus.returning: {VehicleStatus.idle, VehicleStatus.maintenance},
    VehicleStatus.maintenance: {VehicleStatus.idle},
}

# fields a vehicle under maintenance does not accept
OPERATIONAL_FIELDS = {
    'current_weight',
    'current_volume',
    'current_lat',
    'current_lng',
    'planned_route',
    'estimated_return_time',
}


def check_vehicle_invariants(state: dict):
    """
    Validate the capacity, counter and range invariants of a vehicle state.

    @param state: Column values of the vehicle after the pending change is applied.
    @raise HTTPException: 400 listing every violated invariant.
    """
    errors = []

    for current_field, max_field in (('current_weight', 'max_weight'), ('current_volume', 'max_volume')):
        current, maximum = state.get(current_field) or 0, state.get(max_field)
        if current < 0:
            errors.append(f'{current_field} cannot be negative')
        if maximum is not None and current > maximum:
            errors.append(f'{current_field} ({current}) exceeds {max_field} ({maximum})')

    total = state.get('total_deliveries') or 0
    successful = state.get('successful_deliveries') or 0
    late = state.get('late_deliveries') or 0
    if successful + late > total:
        errors.append(
            f'successful_deliveries + late_deliveries ({successful + late}) exceeds total_deliveries ({total})'
        )

    trust_score = state.get('trust_score')
    if trust_score is not None and not 0 <= trust_score <= 100:
        errors.append('trust_score must be between 0 and 100')

    lat, lng = state.get('current_lat'), state.get('current_lng')
    if lat is not None and not -90 <= lat <= 90:
        errors.append('current_lat must be between -90 and 90')
    if lng is not None and not -180 <= lng <= 180:
        errors.append('current_lng must be between -180 and 180')

    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='; '.join(errors),
        )


class VehicleModel(Base, ORMBaseMixin):
    __tablename__ = 'vehicle'

    id = Column(Integer, primary_key=True)
    registration_number = Column(String, unique=True, nullable=False)
    type = Column(Enum(VehicleType), nullable=False)
    status = Column(Enum(VehicleStatus), nullable=False, default=VehicleStatus.idle)

    driver_name = Column(String, nullable=False)
    driver_phone = Column(String, nullable=False)
    driver_license = Column(String)
    carrier_name = Column(String, nullable=False)

    # capacity, kg and cubic meters
    max_weight = Column(Float, nullable=False)
    max_volume = Column(Float, nullable=False)
    current_weight = Column(Float, nullable=False, default=0)
    current_volume = Column(Float, nullable=False, default=0)

    current_lat = Column(Float)
    current_lng = Column(Float)
    last_location_update = Column(DateTime)

    planned_route = Column(Text)  # JSON string of route waypoints
    estimated_return_time = Column(DateTime)

    # consolidation tolerances
    max_deviation_km = Column(Float, nullable=False, default=5)
    max_deviation_minutes = Column(Integer, nullable=False, default=30)
    allow_consolidation = Column(Boolean, nullable=False, default=True)

    # trust and performance, trust_score is 0-100
    trust_score = Column(Float, nullable=False, default=100)
    total_deliveries = Column(Integer, nullable=False, default=0)
    successful_deliveries = Column(Integer, nullable=False, default=0)
    late_deliveries = Column(Integer, nullable=False, default=0)

    @property
    def spare_weight(self) -> float:
        return (self.max_weight or 0) - (self.current_weight or 0)

    @property
    def spare_volume(self) -> float:
        return (self.max_volume or 0) - (self.current_volume or 0)

    @property
    def utilization_percentage(self) -> float:
        weight_utilization = (self.current_weight or 0) / self.max_weight * 100 if self.max_weight else 0
        volume_utilization = (self.current_volume or 0) / self.max_volume * 100 if self.max_volume else 0
        return max(weight_utilization, volume_utilization)

    @property
    def delivery_success_rate(self) -> float:
        if not self.total_deliveries:
            return 100
        return (self.successful_deliveries or 0) / self.total_deliveries * 100

    @classmethod
    def create(cls, db: Session, values: dict, *args, **kwargs) -> "VehicleModel":
        check_vehicle_invariants(values)
        vehicle = super().create(db, values, *args, **kwargs)
        logger.info(f'Created vehicle {vehicle}')
        return vehicle

    def update(self, db: Session, values: dict, *args, **kwargs) -> "VehicleModel":
        new_status = VehicleStatus(values['status']) if values.get('status') is not None else self.status

        if new_status != self.status and new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Cannot change vehicle status from {self.status.value} to {new_status.value}',
            )

        # a vehicle staying in maintenance only takes administrative edits
        if self.status == VehicleStatus.maintenance and new_status == VehicleStatus.maintenance:
            locked_fields = sorted(OPERATIONAL_FIELDS.intersection(values))
            if locked_fields:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f'Vehicle is under maintenance, cannot update: {", ".join(locked_fields)}',
                )

        check_vehicle_invariants({**self._asdict(), **values})

        if new_status != self.status:
            logger.info(f'Vehicle {self} status {self.status.value} -> {new_status.value}')

        return super().update(db, values, *args, **kwargs)

    def update_location(self, db: Session, lat: float, lng: float) -> "VehicleModel":
        return self.update(db, {
            'current_lat': lat,
            'current_lng': lng,
            'last_location_update': datetime.now(UTC),
        })

    @classmethod
    def get_active(cls, db: Session) -> list["VehicleModel"]:
        return db.query(cls).filter(cls.status.in_(ACTIVE_STATUSES)).order_by(cls.id).all()

    @classmethod
    def get_stats(cls, db: Session) -> dict:
        total = db.query(func.count(cls.id)).scalar()
        active = db.query(func.count(cls.id)).filter(cls.status.in_(ACTIVE_STATUSES)).scalar()
        # rows with a zero capacity drop out of the average
        avg_utilization: Optional[float] = db.query(
            func.avg(cls.current_weight / func.nullif(cls.max_weight, 0) * 100)
        ).scalar()

        return {
            'total': total,
            'active': active,
            'avg_utilization': float(avg_utilization) if avg_utilization is not None else 0.0,
        }
