from datetime import timedelta
import pytest

from conftest import T0
from parkinglot.errors import ValidationError
from parkinglot.utils import (
    TARIFF, VehicleType, calculate_fee, compute_duration, normalize_plate, parse_vehicle_type
)


def fee_after(vehicle_type, **elapsed):
    return calculate_fee(T0, T0 + timedelta(**elapsed), vehicle_type)


def test_ninety_minutes_normal():
    breakdown = fee_after('NORMAL', minutes=90)
    assert breakdown.to_dict() == {
        'hours': 1,
        'minutes': 30,
        'total_minutes': 90,
        'hours_charged': 2,
        'total_fee': 30
    }


def test_forty_five_minutes_especial():
    breakdown = fee_after('ESPECIAL', minutes=45)
    assert breakdown.hours_charged == 1
    assert breakdown.total_fee == 5


def test_exact_hour_boundary_is_not_rounded_up():
    breakdown = fee_after('NORMAL', minutes=120)
    assert breakdown.hours_charged == 2
    assert breakdown.total_fee == 30


@pytest.mark.parametrize('minutes', [1, 15, 59, 60])
def test_up_to_one_hour_bills_one_hour(minutes):
    assert fee_after('NORMAL', minutes=minutes).hours_charged == 1


@pytest.mark.parametrize('minutes', [61, 119, 179, 601])
def test_partial_hour_rounds_up(minutes):
    assert fee_after('NORMAL', minutes=minutes).hours_charged == minutes // 60 + 1


@pytest.mark.parametrize('hours', [1, 3, 24])
def test_whole_hours_bill_exactly(hours):
    assert fee_after('NORMAL', hours=hours).hours_charged == hours


@pytest.mark.parametrize('minutes', [1, 45, 90, 60 * 24 * 3])
def test_motorcycles_are_free(minutes):
    breakdown = fee_after('MOTOCICLETA', minutes=minutes)
    assert breakdown.hours_charged >= 1
    assert breakdown.total_fee == 0


@pytest.mark.parametrize('vehicle_type,rate', [('NORMAL', 15), ('ESPECIAL', 5)])
def test_fee_is_hours_charged_times_rate(vehicle_type, rate):
    breakdown = fee_after(vehicle_type, hours=4, minutes=10)
    assert breakdown.hours_charged == 5
    assert breakdown.total_fee == 5 * rate


def test_seconds_are_truncated_from_total_minutes():
    breakdown = fee_after('NORMAL', minutes=60, seconds=59)
    assert breakdown.total_minutes == 60
    assert breakdown.hours_charged == 1


def test_zero_duration_bills_nothing():
    breakdown = calculate_fee(T0, T0, 'NORMAL')
    assert breakdown.total_minutes == 0
    assert breakdown.hours_charged == 0
    assert breakdown.total_fee == 0


def test_sub_minute_session_bills_one_hour():
    breakdown = fee_after('ESPECIAL', seconds=30)
    assert breakdown.total_minutes == 0
    assert breakdown.hours_charged == 1
    assert breakdown.total_fee == 5


def test_exit_before_entry_is_rejected():
    with pytest.raises(ValidationError) as exc:
        calculate_fee(T0, T0 - timedelta(minutes=5), 'NORMAL')
    assert exc.value.reason == 'invalid_duration'


def test_unknown_vehicle_type_is_rejected():
    with pytest.raises(ValidationError) as exc:
        fee_after('CAMION', minutes=10)
    assert exc.value.reason == 'invalid_vehicle_type'


def test_compute_duration_breakdown():
    duration = compute_duration(T0, T0 + timedelta(hours=2, minutes=7, seconds=40))
    assert duration.to_dict() == {'hours': 2, 'minutes': 7, 'total_minutes': 127}


def test_tariff_table():
    assert TARIFF == {VehicleType.NORMAL: 15, VehicleType.ESPECIAL: 5, VehicleType.MOTOCICLETA: 0}


def test_normalize_plate():
    assert normalize_plate('  abc1234 ') == 'ABC1234'


@pytest.mark.parametrize('plate', [None, '', '   ', 123])
def test_normalize_plate_rejects_blank(plate):
    with pytest.raises(ValidationError):
        normalize_plate(plate)


def test_parse_vehicle_type_is_case_sensitive():
    assert parse_vehicle_type('ESPECIAL') is VehicleType.ESPECIAL
    with pytest.raises(ValidationError):
        parse_vehicle_type('especial')


def test_normalize_plate_rejects_overlong_plate():
    assert normalize_plate(' ' + 'a' * 20 + ' ') == 'A' * 20
    with pytest.raises(ValidationError) as exc:
        normalize_plate('A' * 21)
    assert exc.value.reason == 'invalid_plate'
