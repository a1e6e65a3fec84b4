import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from auth import staff_required, admin_required
from errors import ForbiddenError, NotFoundError, ValidationError, field_error
from extensions import db
from models import User, Role
from validators import get_json_body, parse_email, parse_enum, parse_text, raise_if_errors

logger = logging.getLogger(__name__)

user_bp = Blueprint('users', __name__, url_prefix='/api/users')


def _get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError('User not found')
    return user


def _check_self_or_staff(user_id):
    if current_user.id != user_id and not current_user.is_staff:
        raise ForbiddenError('Access denied')


@user_bp.route('', methods=['GET'])
@staff_required
def list_users():
    users = User.query.order_by(User.id).all()
    return jsonify([user.to_dict() for user in users])


@user_bp.route('/<int:user_id>', methods=['GET'])
@login_required
def get_user(user_id):
    _check_self_or_staff(user_id)
    return jsonify(_get_user_or_404(user_id).to_dict())


@user_bp.route('/<int:user_id>', methods=['PUT'])
@login_required
def update_user(user_id):
    """Update a profile; roles are changed by staff only, and ADMIN is granted by admins only"""
    _check_self_or_staff(user_id)
    user = _get_user_or_404(user_id)
    data = get_json_body()

    errors = []
    username = parse_text(data.get('username'), 'username', errors, required=False)
    if username is not None and len(username) < 3:
        errors.append(field_error('username', 'Username must be at least 3 characters'))
    email = parse_email(data.get('email'), 'email', errors, required=False)
    role = parse_enum(Role, data.get('role'), 'role', errors, required=False)
    raise_if_errors(errors)

    if role is not None and role != user.role:
        if not current_user.is_staff:
            raise ForbiddenError('Only admins and managers can change roles')
        if Role.ADMIN in (role, user.role) and current_user.role != Role.ADMIN:
            raise ForbiddenError('Only an admin can grant or revoke the ADMIN role')
        user.role = role

    if username is not None and username != user.username:
        with db.session.no_autoflush:
            if User.query.filter(User.username == username, User.id != user.id).first():
                raise ValidationError('Username already exists')
        user.username = username
    if 'email' in data:
        user.email = email

    db.session.commit()
    logger.info(f"[USERS] User #{user.id} updated by {current_user.username}")
    return jsonify({'message': 'User updated successfully', 'user': user.to_dict()})


@user_bp.route('/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    if current_user.id == user_id:
        raise ValidationError('Cannot delete your own account')
    user = _get_user_or_404(user_id)
    # Bookings outlive their account as walk-in records
    for booking in user.bookings:
        booking.user_id = None
    db.session.delete(user)
    db.session.commit()
    logger.info(f"[USERS] Deleted user #{user_id}")
    return jsonify({'message': 'User deleted successfully'})


@user_bp.route('/<int:user_id>/password', methods=['PUT'])
@login_required
def change_password(user_id):
    _check_self_or_staff(user_id)
    data = get_json_body()

    errors = []
    current_password = data.get('currentPassword') or ''
    new_password = data.get('newPassword') or ''
    if not current_password:
        errors.append(field_error('currentPassword', 'Current password is required'))
    if len(new_password) < 6:
        errors.append(field_error('newPassword', 'New password must be at least 6 characters'))
    raise_if_errors(errors)

    user = _get_user_or_404(user_id)
    if not user.check_password(current_password):
        logger.info(f"[USERS] Wrong current password for user #{user.id}")
        raise ValidationError('Current password is incorrect')

    user.set_password(new_password)
    db.session.commit()
    logger.info(f"[USERS] Password changed for user #{user.id}")
    return jsonify({'message': 'Password changed successfully'})
