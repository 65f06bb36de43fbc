from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from enum import Enum
from parkinglot.errors import ValidationError


class VehicleType(str, Enum):
    NORMAL = 'NORMAL'
    ESPECIAL = 'ESPECIAL'
    MOTOCICLETA = 'MOTOCICLETA'


# hourly rate per vehicle type, abstract currency units
TARIFF = {
    VehicleType.NORMAL: 15,
    VehicleType.ESPECIAL: 5,
    VehicleType.MOTOCICLETA: 0,
}

ONE_MINUTE = timedelta(minutes=1)
PLATE_MAX_LENGTH = 20


@dataclass(frozen=True)
class Duration:
    hours: int
    minutes: int
    total_minutes: int

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class FeeBreakdown:
    hours: int
    minutes: int
    total_minutes: int
    hours_charged: int
    total_fee: int

    @property
    def duration(self):
        return Duration(self.hours, self.minutes, self.total_minutes)

    def to_dict(self):
        return asdict(self)


def normalize_plate(plate):
    if not isinstance(plate, str) or not plate.strip():
        raise ValidationError("Plate is required", reason='invalid_plate')
    plate = plate.strip().upper()
    if len(plate) > PLATE_MAX_LENGTH:
        raise ValidationError(
            f"Plate must be at most {PLATE_MAX_LENGTH} characters",
            reason='invalid_plate',
            details={'plate': plate}
        )
    return plate


def parse_vehicle_type(value):
    if not value:
        raise ValidationError("Vehicle type is required", reason='invalid_vehicle_type')
    try:
        return VehicleType(value)
    except ValueError:
        allowed = ', '.join(t.value for t in VehicleType)
        raise ValidationError(
            f"Invalid vehicle type. Use: {allowed}",
            reason='invalid_vehicle_type',
            details={'type': value}
        )


def parse_date(value, field):
    """Parse an ISO-8601 query parameter; ``None`` passes through."""
    if value is None or value == '':
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date for '{field}'", reason='invalid_date', details={field: value})


def compute_duration(entry_time, exit_time):
    elapsed = exit_time - entry_time
    if elapsed < timedelta(0):
        raise ValidationError(
            "Exit time precedes entry time",
            reason='invalid_duration',
            details={'entry_time': entry_time.isoformat(), 'exit_time': exit_time.isoformat()}
        )

    total_minutes = elapsed // ONE_MINUTE
    hours, minutes = divmod(total_minutes, 60)
    return Duration(hours=hours, minutes=minutes, total_minutes=total_minutes)


def calculate_fee(entry_time, exit_time, vehicle_type):
    """Bill every started hour at the hourly rate of ``vehicle_type``.

    A zero-length session bills nothing; any positive elapsed time, even
    under a minute, bills at least one hour.
    """
    duration = compute_duration(entry_time, exit_time)
    rate = TARIFF[parse_vehicle_type(vehicle_type)]

    hours_charged = duration.hours
    if duration.minutes > 0:
        hours_charged += 1
    if hours_charged == 0 and exit_time > entry_time:
        hours_charged = 1

    return FeeBreakdown(
        hours=duration.hours,
        minutes=duration.minutes,
        total_minutes=duration.total_minutes,
        hours_charged=hours_charged,
        total_fee=hours_charged * rate
    )
