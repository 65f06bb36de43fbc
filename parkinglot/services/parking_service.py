import logging
from datetime import datetime
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from parkinglot.errors import ConflictError, NotFoundError, InfrastructureError
from parkinglot.utils import normalize_plate, parse_vehicle_type, calculate_fee

logger = logging.getLogger(__name__)


class ParkingService:
    """Moves a plate between NOT_PARKED and PARKED.

    ``store`` is a :class:`~parkinglot.services.storage.ParkingStore`;
    ``clock`` returns the current time and is swapped out in tests.
    """

    def __init__(self, store, clock=datetime.now):
        self.store = store
        self.clock = clock

    def begin_session(self, plate, vehicle_type):
        plate = normalize_plate(plate)
        vehicle_type = parse_vehicle_type(vehicle_type)

        try:
            existing = self.store.find_open_record_by_plate(plate)
            if existing:
                logger.warning("Entry rejected, %s already parked since %s", plate, existing.entry_time)
                raise ConflictError(
                    "Vehicle already parked",
                    reason='already_parked',
                    details={'plate': plate, 'entry_time': existing.entry_time.isoformat()}
                )

            vehicle = self.store.find_vehicle_by_plate(plate)
            if vehicle is None:
                vehicle = self.store.create_vehicle(plate, vehicle_type.value)
            elif vehicle.type != vehicle_type.value:
                logger.info("Vehicle %s type changed %s -> %s", plate, vehicle.type, vehicle_type.value)
                vehicle = self.store.update_vehicle_type(vehicle.id, vehicle_type.value)

            record = self.store.create_parking_record(vehicle.id, self.clock())
            self.store.commit()

        except IntegrityError:
            self.store.rollback()
            logger.warning("Concurrent entry for %s lost the race", plate)
            raise ConflictError("Vehicle already parked", reason='already_parked', details={'plate': plate})
        except SQLAlchemyError as e:
            self.store.rollback()
            logger.exception("Storage failure while registering entry for %s", plate)
            raise InfrastructureError("Error registering entry") from e

        logger.info("Entry registered: %s - %s", vehicle.plate, vehicle.type)
        return record, vehicle

    def end_session(self, plate):
        plate = normalize_plate(plate)

        try:
            record = self.store.find_open_record_by_plate(plate)
            if not record:
                raise NotFoundError(
                    "No active parking record found for this vehicle",
                    reason='no_active_session',
                    details={'plate': plate}
                )
            record, breakdown = self._close(record)

        except SQLAlchemyError as e:
            self.store.rollback()
            logger.exception("Storage failure while registering exit for %s", plate)
            raise InfrastructureError("Error registering exit") from e

        logger.info("Exit registered: %s - %s", plate, breakdown.total_fee)
        return record, breakdown

    def end_session_by_id(self, record_id):
        try:
            record = self.store.find_record_by_id(record_id)
            if record is None:
                raise NotFoundError(
                    "Parking record not found",
                    reason='record_not_found',
                    details={'id': record_id}
                )
            if not record.is_open:
                raise ConflictError(
                    "Parking record already has an exit",
                    reason='already_closed',
                    details={'id': record_id, 'exit_time': record.exit_time.isoformat()}
                )
            record, breakdown = self._close(record)

        except SQLAlchemyError as e:
            self.store.rollback()
            logger.exception("Storage failure while closing record %s", record_id)
            raise InfrastructureError("Error registering exit") from e

        logger.info("Exit registered for record %s: %s", record_id, breakdown.total_fee)
        return record, breakdown

    def _close(self, record):
        exit_time = self.clock()
        breakdown = calculate_fee(record.entry_time, exit_time, record.vehicle.type)
        record = self.store.close_parking_record(record.id, exit_time, breakdown.total_fee)
        self.store.commit()
        return record, breakdown
