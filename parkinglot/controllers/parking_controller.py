from flask import Blueprint, request, jsonify, current_app
from parkinglot.extensions import db
from parkinglot.errors import ValidationError
from parkinglot.services.parking_service import ParkingService
from parkinglot.services.report_service import ReportService
from parkinglot.services.storage import SQLAlchemyParkingStore
from parkinglot.utils import parse_vehicle_type, parse_date

parking_bp = Blueprint('parking', __name__, url_prefix='/api/vehicles')


def _clock():
    return current_app.extensions['parking_clock']


def _parking_service():
    return ParkingService(SQLAlchemyParkingStore(db.session), clock=_clock())


def _report_service():
    return ReportService(db.session, clock=_clock())


def _positive_int(name, default):
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = None
    if value is None or value < 1:
        raise ValidationError(
            f"'{name}' must be a positive integer",
            reason='invalid_pagination',
            details={name: raw}
        )
    return value


def _json_body():
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("JSON object body required", reason='invalid_body')
    return payload


def _closed_record(record, breakdown):
    return {
        'id': record.id,
        'plate': record.vehicle.plate,
        'type': record.vehicle.type,
        'entry_time': record.entry_time.isoformat(),
        'exit_time': record.exit_time.isoformat(),
        'duration': breakdown.duration.to_dict(),
        'hours_charged': breakdown.hours_charged,
        'total_fee': breakdown.total_fee
    }


@parking_bp.route('/entry', methods=['POST'])
def entry():
    payload = _json_body()

    record, vehicle = _parking_service().begin_session(payload.get('plate'), payload.get('type'))
    return jsonify({
        'success': True,
        'message': 'Entry recorded',
        'record': {
            'id': record.id,
            'plate': vehicle.plate,
            'type': vehicle.type,
            'entry_time': record.entry_time.isoformat()
        }
    }), 201


@parking_bp.route('/exit', methods=['POST'])
def exit():
    payload = _json_body()

    record, breakdown = _parking_service().end_session(payload.get('plate'))
    return jsonify({'success': True, 'message': 'Exit recorded', 'record': _closed_record(record, breakdown)}), 200


@parking_bp.route('/active', methods=['GET'])
def get_active():
    vehicles = _report_service().active_sessions()
    return jsonify({'success': True, 'count': len(vehicles), 'vehicles': vehicles}), 200


@parking_bp.route('/history', methods=['GET'])
def get_history():
    page = _positive_int('page', 1)
    per_page = min(
        _positive_int('limit', current_app.config['HISTORY_PAGE_SIZE']),
        current_app.config['HISTORY_MAX_PAGE_SIZE']
    )
    vehicle_type = request.args.get('type')

    result = _report_service().history(
        page=page,
        per_page=per_page,
        start_date=parse_date(request.args.get('start_date'), 'start_date'),
        end_date=parse_date(request.args.get('end_date'), 'end_date'),
        plate=request.args.get('plate'),
        vehicle_type=parse_vehicle_type(vehicle_type) if vehicle_type else None,
        status=request.args.get('status') or None
    )
    return jsonify({'success': True, **result}), 200


@parking_bp.route('/plate/<plate>', methods=['GET'])
def get_vehicle_by_plate(plate):
    vehicle = _report_service().vehicle_by_plate(plate, limit=current_app.config['RECENT_RECORDS_LIMIT'])
    return jsonify({'success': True, 'vehicle': vehicle}), 200


@parking_bp.route('/all', methods=['GET'])
def get_all_vehicles():
    vehicles = _report_service().all_vehicles()
    return jsonify({'success': True, 'count': len(vehicles), 'vehicles': vehicles}), 200


@parking_bp.route('/statistics', methods=['GET'])
def statistics():
    return jsonify({'success': True, 'statistics': _report_service().statistics()}), 200


@parking_bp.route('/revenue', methods=['GET'])
def revenue():
    report = _report_service().revenue_report(
        start_date=parse_date(request.args.get('start_date'), 'start_date'),
        end_date=parse_date(request.args.get('end_date'), 'end_date')
    )
    return jsonify({'success': True, 'report': report}), 200


@parking_bp.route('/records/<int:record_id>', methods=['GET'])
def get_record(record_id):
    return jsonify({'success': True, 'record': _report_service().get_record(record_id)}), 200


@parking_bp.route('/records/<int:record_id>/exit', methods=['PATCH'])
def close_record(record_id):
    record, breakdown = _parking_service().end_session_by_id(record_id)
    return jsonify({'success': True, 'message': 'Exit recorded', 'record': _closed_record(record, breakdown)}), 200
