from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from apps.fleet.gateway import gateway
from apps.fleet.models import VehicleStatus, VehicleType
from apps.fleet.models.vehicle import VehicleModel
from core.mixins.orm import DeleteResponse
from db import get_db

router = APIRouter(tags=['Vehicles'], prefix='/vehicles')

Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]


class VehicleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    string_id: Optional[str] = None
    registration_number: str
    type: VehicleType
    status: VehicleStatus
    driver_name: str
    driver_phone: str
    driver_license: Optional[str] = None
    carrier_name: str
    max_weight: float
    max_volume: float
    current_weight: float
    current_volume: float
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    last_location_update: Optional[datetime] = None
    planned_route: Optional[str] = None
    estimated_return_time: Optional[datetime] = None
    max_deviation_km: float
    max_deviation_minutes: int
    allow_consolidation: bool
    trust_score: float
    total_deliveries: int
    successful_deliveries: int
    late_deliveries: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # derived
    spare_weight: float
    spare_volume: float
    utilization_percentage: float
    delivery_success_rate: float


class VehicleCreate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    registration_number: str = Field(min_length=1)
    type: VehicleType
    status: VehicleStatus = VehicleStatus.idle
    driver_name: str = Field(min_length=1)
    driver_phone: str = Field(min_length=1)
    driver_license: Optional[str] = None
    carrier_name: str = Field(min_length=1)
    max_weight: float = Field(gt=0)
    max_volume: float = Field(gt=0)
    current_weight: float = Field(default=0, ge=0)
    current_volume: float = Field(default=0, ge=0)
    current_lat: Optional[Latitude] = None
    current_lng: Optional[Longitude] = None
    planned_route: Optional[str] = None
    estimated_return_time: Optional[datetime] = None
    max_deviation_km: float = Field(default=5, ge=0)
    max_deviation_minutes: int = Field(default=30, ge=0)
    allow_consolidation: bool = True
    trust_score: float = Field(default=100, ge=0, le=100)
    total_deliveries: int = Field(default=0, ge=0)
    successful_deliveries: int = Field(default=0, ge=0)
    late_deliveries: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def check_capacity_and_counters(self):
        if self.current_weight > self.max_weight:
            raise ValueError('current_weight cannot exceed max_weight')
        if self.current_volume > self.max_volume:
            raise ValueError('current_volume cannot exceed max_volume')
        if self.successful_deliveries + self.late_deliveries > self.total_deliveries:
            raise ValueError('successful_deliveries + late_deliveries cannot exceed total_deliveries')
        return self


class VehicleUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    registration_number: Optional[str] = Field(default=None, min_length=1)
    type: Optional[VehicleType] = None
    status: Optional[VehicleStatus] = None
    driver_name: Optional[str] = Field(default=None, min_length=1)
    driver_phone: Optional[str] = Field(default=None, min_length=1)
    driver_license: Optional[str] = None
    carrier_name: Optional[str] = Field(default=None, min_length=1)
    max_weight: Optional[float] = Field(default=None, gt=0)
    max_volume: Optional[float] = Field(default=None, gt=0)
    current_weight: Optional[float] = Field(default=None, ge=0)
    current_volume: Optional[float] = Field(default=None, ge=0)
    current_lat: Optional[Latitude] = None
    current_lng: Optional[Longitude] = None
    planned_route: Optional[str] = None
    estimated_return_time: Optional[datetime] = None
    max_deviation_km: Optional[float] = Field(default=None, ge=0)
    max_deviation_minutes: Optional[int] = Field(default=None, ge=0)
    allow_consolidation: Optional[bool] = None
    trust_score: Optional[float] = Field(default=None, ge=0, le=100)
    total_deliveries: Optional[int] = Field(default=None, ge=0)
    successful_deliveries: Optional[int] = Field(default=None, ge=0)
    late_deliveries: Optional[int] = Field(default=None, ge=0)

    @field_validator(
        'registration_number', 'type', 'status', 'driver_name', 'driver_phone', 'carrier_name',
        'max_weight', 'max_volume', 'current_weight', 'current_volume', 'max_deviation_km',
        'max_deviation_minutes', 'allow_consolidation', 'trust_score', 'total_deliveries',
        'successful_deliveries', 'late_deliveries',
    )
    @classmethod
    def not_null(cls, value):
        # only reached when the client sent the key explicitly
        if value is None:
            raise ValueError('field cannot be null')
        return value


class LocationUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    lat: Latitude
    lng: Longitude


class VehicleStats(BaseModel):
    total: int
    active: int
    avg_utilization: float


def _get_vehicle_or_404(db: Session, vehicle_id: int) -> VehicleModel:
    vehicle = VehicleModel.get_one(db, vehicle_id)
    if not vehicle:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vehicle not found",
        )
    return vehicle


@router.post("", response_model=VehicleRead)
def create_vehicle(vehicle: VehicleCreate, db: Session = Depends(get_db)):
    return VehicleModel.create(db, vehicle.model_dump())


@router.get("", response_model=list[VehicleRead])
def get_vehicles(skip: int = 0, limit: Optional[int] = None, db: Session = Depends(get_db)):
    return VehicleModel.get_all(db, skip=skip, limit=limit)


@router.get("/active", response_model=list[VehicleRead])
def get_active_vehicles(db: Session = Depends(get_db)):
    return VehicleModel.get_active(db)


@router.get("/stats", response_model=VehicleStats)
def get_vehicle_stats(db: Session = Depends(get_db)):
    return VehicleModel.get_stats(db)


@router.get("/{vehicle_id}", response_model=VehicleRead)
def get_vehicle(vehicle_id: int, db: Session = Depends(get_db)):
    return _get_vehicle_or_404(db, vehicle_id)


@router.patch("/{vehicle_id}", response_model=VehicleRead)
async def update_vehicle(vehicle_id: int, values: VehicleUpdate, db: Session = Depends(get_db)):
    def _update() -> VehicleRead:
        vehicle = _get_vehicle_or_404(db, vehicle_id)
        vehicle = vehicle.update(db, values.model_dump(exclude_unset=True))
        return VehicleRead.model_validate(vehicle)

    # sync ORM calls run in the threadpool, off the event loop
    result = await run_in_threadpool(_update)
    await gateway.emit_vehicle_update(result)
    return result


@router.patch("/{vehicle_id}/location", response_model=VehicleRead)
async def update_vehicle_location(vehicle_id: int, location: LocationUpdate, db: Session = Depends(get_db)):
    def _update_location() -> VehicleRead:
        vehicle = _get_vehicle_or_404(db, vehicle_id)
        vehicle = vehicle.update_location(db, location.lat, location.lng)
        return VehicleRead.model_validate(vehicle)

    result = await run_in_threadpool(_update_location)
    await gateway.emit_vehicle_update(result)
    return result


@router.delete("/{vehicle_id}", response_model=DeleteResponse)
def delete_vehicle(vehicle_id: int, db: Session = Depends(get_db)):
    vehicle = _get_vehicle_or_404(db, vehicle_id)
    return vehicle.delete(db)
