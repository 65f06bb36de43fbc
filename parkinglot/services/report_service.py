from datetime import datetime
from sqlalchemy import func
from parkinglot.errors import NotFoundError, ValidationError
from parkinglot.models.parking_db import Vehicle, ParkingRecord
from parkinglot.utils import VehicleType, normalize_plate, compute_duration


def _record_with_duration(record, now):
    data = record.to_dict()
    # open records report elapsed time so far; clock skew must not break the listing
    until = record.exit_time if record.exit_time else max(now, record.entry_time)
    data['duration'] = compute_duration(record.entry_time, until).to_dict()
    return data


def _date_range(query, start_date, end_date):
    if start_date:
        query = query.filter(ParkingRecord.entry_time >= start_date)
    if end_date:
        query = query.filter(ParkingRecord.entry_time <= end_date)
    return query


class ReportService:
    """Read-only views over vehicles and parking records.

    ``session`` must be a Flask-SQLAlchemy session; history relies on its
    ``Query.paginate``.
    """

    def __init__(self, session, clock=datetime.now):
        self.session = session
        self.clock = clock

    def active_sessions(self):
        records = (
            self.session.query(ParkingRecord)
            .filter(ParkingRecord.exit_time.is_(None))
            .order_by(ParkingRecord.entry_time.desc())
            .all()
        )

        now = self.clock()
        return [_record_with_duration(r, now) for r in records]

    def history(self, page=1, per_page=10, start_date=None, end_date=None, plate=None, vehicle_type=None, status=None):
        query = self.session.query(ParkingRecord).join(Vehicle)
        query = _date_range(query, start_date, end_date)

        if status == 'active':
            query = query.filter(ParkingRecord.exit_time.is_(None))
        elif status == 'completed':
            query = query.filter(ParkingRecord.exit_time.isnot(None))
        elif status is not None:
            raise ValidationError("Invalid status. Use: active, completed", reason='invalid_status', details={'status': status})

        if plate:
            query = query.filter(Vehicle.plate.contains(plate.strip().upper()))
        if vehicle_type:
            query = query.filter(Vehicle.type == vehicle_type.value)

        records = query.order_by(ParkingRecord.entry_time.desc(), ParkingRecord.id.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )
        now = self.clock()

        return {
            'pagination': {
                'page': page,
                'limit': per_page,
                'total': records.total,
                'total_pages': records.pages
            },
            'records': [_record_with_duration(r, now) for r in records.items]
        }

    def vehicle_by_plate(self, plate, limit=10):
        plate = normalize_plate(plate)
        vehicle = self.session.query(Vehicle).filter_by(plate=plate).first()
        if vehicle is None:
            raise NotFoundError("Vehicle not found", reason='vehicle_not_found', details={'plate': plate})

        recent = (
            self.session.query(ParkingRecord)
            .filter_by(vehicle_id=vehicle.id)
            .order_by(ParkingRecord.entry_time.desc())
            .limit(limit)
            .all()
        )
        total_visits = self.session.query(ParkingRecord).filter_by(vehicle_id=vehicle.id).count()
        parked = any(r.is_open for r in recent)
        now = self.clock()

        data = vehicle.to_dict()
        data['current_status'] = 'parked' if parked else 'not_parked'
        data['total_visits'] = total_visits
        data['recent_records'] = [_record_with_duration(r, now) for r in recent]
        return data

    def all_vehicles(self):
        visits = (
            self.session.query(ParkingRecord.vehicle_id, func.count(ParkingRecord.id))
            .group_by(ParkingRecord.vehicle_id)
            .all()
        )
        visits = dict(visits)

        open_ids = {
            vehicle_id for (vehicle_id,) in
            self.session.query(ParkingRecord.vehicle_id).filter(ParkingRecord.exit_time.is_(None))
        }

        vehicles = self.session.query(Vehicle).order_by(Vehicle.created_at.desc(), Vehicle.id.desc()).all()
        result = []
        for vehicle in vehicles:
            data = vehicle.to_dict()
            data['total_visits'] = visits.get(vehicle.id, 0)
            data['current_status'] = 'parked' if vehicle.id in open_ids else 'not_parked'
            result.append(data)
        return result

    def statistics(self):
        closed = ParkingRecord.exit_time.isnot(None)
        by_type = (
            self.session.query(Vehicle.type, func.count(Vehicle.id))
            .group_by(Vehicle.type)
            .all()
        )

        return {
            'total_vehicles': self.session.query(Vehicle).count(),
            'active_vehicles': self.session.query(ParkingRecord).filter(ParkingRecord.exit_time.is_(None)).count(),
            'total_records': self.session.query(ParkingRecord).count(),
            'completed_records': self.session.query(ParkingRecord).filter(closed).count(),
            'total_revenue': self.session.query(func.coalesce(func.sum(ParkingRecord.total_fee), 0)).filter(closed).scalar(),
            'vehicles_by_type': [{'type': t, 'count': c} for t, c in by_type]
        }

    def revenue_report(self, start_date=None, end_date=None):
        query = (
            self.session.query(Vehicle.type, func.count(ParkingRecord.id), func.coalesce(func.sum(ParkingRecord.total_fee), 0))
            .select_from(ParkingRecord)
            .join(Vehicle, ParkingRecord.vehicle_id == Vehicle.id)
            .filter(ParkingRecord.exit_time.isnot(None))
        )
        query = _date_range(query, start_date, end_date)

        revenue_by_type = {t.value: 0 for t in VehicleType}
        total_records = 0
        for vehicle_type, count, revenue in query.group_by(Vehicle.type).all():
            revenue_by_type[vehicle_type] = revenue
            total_records += count

        return {
            'total_revenue': sum(revenue_by_type.values()),
            'total_records': total_records,
            'revenue_by_type': revenue_by_type,
            'period': {
                'start_date': start_date.isoformat() if start_date else None,
                'end_date': end_date.isoformat() if end_date else None
            }
        }

    def get_record(self, record_id):
        record = self.session.get(ParkingRecord, record_id)
        if record is None:
            raise NotFoundError("Parking record not found", reason='record_not_found', details={'id': record_id})
        return _record_with_duration(record, self.clock())
