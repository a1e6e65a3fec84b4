import logging
from datetime import datetime

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from auth import create_token
from errors import ApiError, ForbiddenError, ValidationError, field_error
from extensions import db
from models import User, Role
from validators import get_json_body, parse_enum, parse_text, raise_if_errors

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


@auth_bp.route('/auth/register', methods=['POST'])
def register():
    """Register a new user; only an admin may hand out staff roles"""
    data = get_json_body()
    errors = []
    username = parse_text(data.get('username'), 'username', errors)
    password = data.get('password') or ''
    role = parse_enum(Role, data.get('role'), 'role', errors, required=False) or Role.USER

    if username is not None and len(username) < 3:
        errors.append(field_error('username', 'Username must be at least 3 characters'))
    if len(password) < 6:
        errors.append(field_error('password', 'Password must be at least 6 characters'))
    raise_if_errors(errors)

    if role != Role.USER and not (current_user.is_authenticated and current_user.role == Role.ADMIN):
        raise ForbiddenError('Only an admin can create staff accounts')

    if User.query.filter_by(username=username).first():
        raise ValidationError('Username already exists')

    try:
        user = User(username=username, role=role)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
    except ApiError:
        raise
    except Exception:
        db.session.rollback()
        logger.exception(f"[REGISTER] Failed for {username}")
        return jsonify({'error': 'Failed to create user'}), 500

    logger.info(f"[REGISTER] User created: {username} ({role.value})")
    return jsonify({'message': 'User created successfully', 'user': user.to_dict()}), 201


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """Login user and return JWT token"""
    data = get_json_body()
    errors = []
    username = parse_text(data.get('username'), 'username', errors)
    password = parse_text(data.get('password'), 'password', errors)
    raise_if_errors(errors)

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        logger.info(f"[LOGIN] Invalid credentials for: {username}")
        return jsonify({'error': 'Invalid credentials'}), 401

    token = create_token(user)
    logger.info(f"[LOGIN] Login successful for: {username}")
    return jsonify({
        'message': 'Login successful',
        'token': token,
        'user': user.to_dict(),
    }), 200


@auth_bp.route('/auth/me', methods=['GET'])
@login_required
def me():
    return jsonify(current_user.to_dict())


@auth_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'OK',
        'message': 'Hotel Management API is running',
        'timestamp': datetime.utcnow().isoformat(),
    }), 200
