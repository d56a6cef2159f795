"""MRC Attendance - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"]
)

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from mrc_attendance.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    setup_logging(app)
    register_blueprints(app)
    register_error_handlers(app)
    setup_database(app)
    register_commands(app)

    @app.route('/health')
    def health_check():
        return jsonify({
            'ok': True,
            'service': 'MRC Attendance',
            'version': '1.0.0'
        })

    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from mrc_attendance.api.auth import auth_bp
    from mrc_attendance.api.qr import qr_bp
    from mrc_attendance.api.attendance import attendance_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # sign-qr and validate-scan live directly under /api
    app.register_blueprint(qr_bp, url_prefix='/api')

    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from mrc_attendance.utils.errors import AttendanceError
    from mrc_attendance.utils.helpers import handle_error
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(AttendanceError)
    def handle_attendance_error(error):
        return handle_error(error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return handle_error(e.description or e.name, e.code)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return handle_error("Internal server error", 500)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return handle_error("Token has expired", 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return handle_error("Invalid token", 401)

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return handle_error("Authorization token required", 401)

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    app.logger.setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)

        app.logger.info('MRC Attendance startup')

def setup_database(app: Flask) -> None:
    """Import models so the metadata knows every table."""
    with app.app_context():
        from mrc_attendance.models import User, UserRole, AttendanceRecord, AttendanceStatus  # noqa: F401

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('create-admin')
    @click.option('--email', prompt='Admin email')
    @click.option('--name', prompt='Admin name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option('--super', 'is_super', is_flag=True, help='Create a super admin')
    def create_admin(email, name, password, is_super):
        """Create admin user."""
        from mrc_attendance.models.user import User, UserRole

        if User.query.filter_by(email=email.lower().strip()).first():
            raise click.ClickException(f'User already exists: {email}')

        admin = User(
            email=email.lower().strip(),
            name=name.strip(),
            role=UserRole.SUPER_ADMIN if is_super else UserRole.ADMIN
        )
        admin.set_password(password)
        admin.save()
        click.echo(f'Admin user created: {admin.email} ({admin.uid})')

    @app.cli.command('issue-token')
    @click.argument('user_id')
    @click.argument('activity_id')
    def issue_token(user_id, activity_id):
        """Print a signed QR payload for USER_ID at ACTIVITY_ID."""
        import json
        from mrc_attendance.services.qr_service import QRService
        from mrc_attendance.utils.errors import AttendanceError

        try:
            payload = QRService.issue_token(
                user_id, activity_id, app.config.get('SIGNING_SECRET')
            )
        except AttendanceError as e:
            raise click.ClickException(e.message)

        click.echo(json.dumps(payload, separators=(',', ':')))
