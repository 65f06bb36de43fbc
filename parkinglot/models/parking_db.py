from datetime import datetime
from parkinglot.extensions import db
from parkinglot.utils import PLATE_MAX_LENGTH

class Vehicle(db.Model):
    __tablename__ = 'vehicles'

    id = db.Column(db.Integer, primary_key=True)
    plate = db.Column(db.String(PLATE_MAX_LENGTH), nullable=False, unique=True, index=True)
    type = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)

    records = db.relationship('ParkingRecord', back_populates='vehicle')

    def to_dict(self):
        return {
            'id': self.id,
            'plate': self.plate,
            'type': self.type,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class ParkingRecord(db.Model):
    __tablename__ = 'parking_records'
    # one open session per vehicle; the losing concurrent entry fails at commit
    __table_args__ = (
        db.Index(
            'uq_open_record_per_vehicle', 'vehicle_id', unique=True,
            sqlite_where=db.text('exit_time IS NULL'),
            postgresql_where=db.text('exit_time IS NULL')
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id'), nullable=False, index=True)
    entry_time = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)
    exit_time = db.Column(db.DateTime, nullable=True)
    total_fee = db.Column(db.Integer, nullable=True)

    vehicle = db.relationship('Vehicle', back_populates='records')

    @property
    def is_open(self):
        return self.exit_time is None

    @property
    def status(self):
        return 'active' if self.is_open else 'completed'

    def to_dict(self):
        return {
            'id': self.id,
            'plate': self.vehicle.plate if self.vehicle else None,
            'type': self.vehicle.type if self.vehicle else None,
            'entry_time': self.entry_time.isoformat() if self.entry_time else None,
            'exit_time': self.exit_time.isoformat() if self.exit_time else None,
            'total_fee': self.total_fee,
            'status': self.status
        }
