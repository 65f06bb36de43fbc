from abc import ABC, abstractmethod
from parkinglot.errors import NotFoundError
from parkinglot.models.parking_db import Vehicle, ParkingRecord


class ParkingStore(ABC):
    """Persistence operations the session tracker depends on.

    Implementations stage changes; nothing is durable until ``commit``.
    """

    @abstractmethod
    def find_open_record_by_plate(self, plate):
        ...

    @abstractmethod
    def find_vehicle_by_plate(self, plate):
        ...

    @abstractmethod
    def create_vehicle(self, plate, vehicle_type):
        ...

    @abstractmethod
    def update_vehicle_type(self, vehicle_id, vehicle_type):
        ...

    @abstractmethod
    def create_parking_record(self, vehicle_id, entry_time):
        ...

    @abstractmethod
    def find_record_by_id(self, record_id):
        ...

    @abstractmethod
    def close_parking_record(self, record_id, exit_time, fee):
        """Close an open record; raises ``NotFoundError`` if it is already closed."""

    @abstractmethod
    def commit(self):
        ...

    @abstractmethod
    def rollback(self):
        ...


class SQLAlchemyParkingStore(ParkingStore):

    def __init__(self, session):
        self.session = session

    def find_open_record_by_plate(self, plate):
        return (
            self.session.query(ParkingRecord)
            .join(Vehicle)
            .filter(Vehicle.plate == plate, ParkingRecord.exit_time.is_(None))
            .first()
        )

    def find_vehicle_by_plate(self, plate):
        return self.session.query(Vehicle).filter_by(plate=plate).first()

    def create_vehicle(self, plate, vehicle_type):
        vehicle = Vehicle(plate=plate, type=vehicle_type)
        self.session.add(vehicle)
        self.session.flush()
        return vehicle

    def update_vehicle_type(self, vehicle_id, vehicle_type):
        vehicle = self.session.get(Vehicle, vehicle_id)
        vehicle.type = vehicle_type
        self.session.flush()
        return vehicle

    def create_parking_record(self, vehicle_id, entry_time):
        record = ParkingRecord(vehicle_id=vehicle_id, entry_time=entry_time)
        self.session.add(record)
        self.session.flush()
        return record

    def find_record_by_id(self, record_id):
        return self.session.get(ParkingRecord, record_id)

    def close_parking_record(self, record_id, exit_time, fee):
        # only an open record may be closed; a concurrent exit that got there first wins
        updated = (
            self.session.query(ParkingRecord)
            .filter(ParkingRecord.id == record_id, ParkingRecord.exit_time.is_(None))
            .update({'exit_time': exit_time, 'total_fee': fee}, synchronize_session='fetch')
        )
        if not updated:
            raise NotFoundError(
                "No active parking record found",
                reason='no_active_session',
                details={'id': record_id}
            )
        record = self.session.get(ParkingRecord, record_id)
        self.session.refresh(record)
        return record

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
