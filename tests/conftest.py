"""Pytest configuration and fixtures for parking lot tests."""
from datetime import datetime, timedelta
import pytest

from parkinglot import create_app
from parkinglot.config import TestConfig
from parkinglot.errors import NotFoundError
from parkinglot.extensions import db
from parkinglot.models.parking_db import Vehicle, ParkingRecord
from parkinglot.services.storage import ParkingStore


T0 = datetime(2025, 3, 14, 8, 0, 0)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class InMemoryParkingStore(ParkingStore):
    """Dict-backed store; records survive only for the life of the test."""

    def __init__(self):
        self.vehicles = {}
        self.records = {}
        self.commits = 0
        self.rollbacks = 0

    def find_open_record_by_plate(self, plate):
        for record in self.records.values():
            if record.vehicle.plate == plate and record.exit_time is None:
                return record
        return None

    def find_vehicle_by_plate(self, plate):
        for vehicle in self.vehicles.values():
            if vehicle.plate == plate:
                return vehicle
        return None

    def create_vehicle(self, plate, vehicle_type):
        vehicle = Vehicle(id=len(self.vehicles) + 1, plate=plate, type=vehicle_type)
        self.vehicles[vehicle.id] = vehicle
        return vehicle

    def update_vehicle_type(self, vehicle_id, vehicle_type):
        vehicle = self.vehicles[vehicle_id]
        vehicle.type = vehicle_type
        return vehicle

    def create_parking_record(self, vehicle_id, entry_time):
        record = ParkingRecord(id=len(self.records) + 1, entry_time=entry_time)
        record.vehicle = self.vehicles[vehicle_id]
        self.records[record.id] = record
        return record

    def find_record_by_id(self, record_id):
        return self.records.get(record_id)

    def close_parking_record(self, record_id, exit_time, fee):
        record = self.records[record_id]
        if record.exit_time is not None:
            raise NotFoundError("No active parking record found", reason='no_active_session')
        record.exit_time = exit_time
        record.total_fee = fee
        return record

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return InMemoryParkingStore()


@pytest.fixture
def app(clock):
    app = create_app(TestConfig, clock=clock)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield
