import os
import logging

import click
from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from errors import ApiError
from extensions import db, login_manager, migrate

# Set up logging
logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# create the app
app = Flask(__name__)
app.secret_key = os.environ.get("SESSION_SECRET", "hotel_booking_secret_key")
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

cors_origins = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
CORS(app, resources={r"/api/*": {"origins": cors_origins}}, supports_credentials=True)

database_url = os.environ.get("DATABASE_URL", "sqlite:///hotel.db")

# Fix for Heroku/Render postgres:// URLs (should be postgresql://)
if database_url.startswith("postgres://"):
    database_url = database_url.replace("postgres://", "postgresql://", 1)

app.config["SQLALCHEMY_DATABASE_URI"] = database_url
if database_url.startswith("postgresql"):
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

app.config["JWT_SECRET_KEY"] = os.environ.get("JWT_SECRET_KEY", app.secret_key)
app.config["JWT_EXPIRES_HOURS"] = int(os.environ.get("JWT_EXPIRES_HOURS", 24))
app.config["HOTEL_TIMEZONE"] = os.environ.get("HOTEL_TIMEZONE", "Europe/Belgrade")
app.json.sort_keys = False

# Initialize the extensions
db.init_app(app)
login_manager.init_app(app)
migrate.init_app(app, db)


@app.errorhandler(ApiError)
def handle_api_error(error):
    db.session.rollback()
    return jsonify(error.to_dict()), error.status_code


@app.errorhandler(IntegrityError)
def handle_integrity_error(error):
    db.session.rollback()
    logger.warning(f"[DB] Integrity error: {error.orig}")
    return jsonify({'error': 'Duplicate entry', 'message': 'A record with these values already exists'}), 400


@app.errorhandler(HTTPException)
def handle_http_error(error):
    if error.code == 404:
        return jsonify({'error': 'Route not found'}), 404
    return jsonify({'error': error.name, 'message': error.description}), error.code


@app.errorhandler(Exception)
def handle_unexpected_error(error):
    db.session.rollback()
    logger.exception("[APP] Unhandled error")
    return jsonify({'error': 'Internal server error'}), 500


with app.app_context():
    # Import the models here so their tables will be created
    import models  # noqa: F401
    import auth  # noqa: F401  registers the login manager callbacks
    db.create_all()

    from auth_routes import auth_bp
    from room_routes import room_bp
    from booking_routes import booking_bp
    from guest_routes import guest_bp
    from rate_routes import rate_bp
    from deal_routes import deal_bp
    from refund_routes import refund_bp
    from settings_routes import settings_bp
    from user_routes import user_bp

    for blueprint in (auth_bp, room_bp, booking_bp, guest_bp, rate_bp, deal_bp, refund_bp,
                      settings_bp, user_bp):
        app.register_blueprint(blueprint)


@app.cli.command("init-db")
@click.option("--reset", is_flag=True, help="Drop every table before seeding.")
def init_db_command(reset):
    """Create the tables and load the sample hotel data."""
    from init_data import create_initial_data
    if reset:
        db.drop_all()
    db.create_all()
    create_initial_data()
    click.echo("Database initialized.")


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=False)
