import enum


class VehicleType(enum.Enum):
    two_wheeler = '2w'
    four_wheeler = '4w'


class VehicleStatus(enum.Enum):
    idle = 'idle'
    dispatched = 'dispatched'
    in_transit = 'in_transit'
    returning = 'returning'
    maintenance = 'maintenance'
