import logging
from datetime import datetime
from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from parkinglot.config import Config
from parkinglot.errors import ParkingError
from parkinglot.extensions import db

logger = logging.getLogger(__name__)

def create_app(config_class=Config, clock=datetime.now):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    logging.getLogger('parkinglot').setLevel(app.config['LOG_LEVEL'])

    db.init_app(app)
    app.extensions['parking_clock'] = clock

    from parkinglot.controllers.parking_controller import parking_bp

    app.register_blueprint(parking_bp)

    @app.errorhandler(ParkingError)
    def handle_parking_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(e):
        db.session.rollback()
        logger.exception("Unhandled storage failure")
        return jsonify({'success': False, 'error': 'Internal storage error', 'reason': 'storage_failure'}), 500

    with app.app_context():

        from parkinglot.models import parking_db
        db.create_all()

    @app.route('/healthy')
    def healthy():
        return {'status': 'healthy', 'message': 'Server is running!'}

    return app
