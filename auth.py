"""
JWT bearer authentication

Tokens are HS256 JWTs carrying the user id and role. Flask-Login's request
loader decodes the Authorization header on each request, so routes use
``current_user`` and the decorators below.
"""
import logging
from datetime import datetime, timedelta
from functools import wraps

import jwt
from flask import current_app
from flask_login import current_user

from errors import AuthError, ForbiddenError
from extensions import db, login_manager
from models import User, Role

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'


def create_token(user):
    payload = {
        'user_id': user.id,
        'username': user.username,
        'role': user.role.value,
        'exp': datetime.utcnow() + timedelta(hours=current_app.config['JWT_EXPIRES_HOURS']),
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm=JWT_ALGORITHM)


def decode_token(token):
    return jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=[JWT_ALGORITHM])


@login_manager.request_loader
def load_user_from_request(request):
    token = request.headers.get('Authorization')
    if not token:
        return None
    if token.startswith('Bearer '):
        token = token[7:]
    try:
        data = decode_token(token)
    except jwt.ExpiredSignatureError:
        logger.info("[AUTH] Token expired")
        return None
    except jwt.InvalidTokenError:
        logger.info("[AUTH] Invalid token")
        return None
    user = db.session.get(User, data.get('user_id'))
    if user is None:
        logger.warning(f"[AUTH] Token for unknown user {data.get('user_id')}")
    return user


@login_manager.unauthorized_handler
def unauthorized():
    raise AuthError('Access token required')


def roles_required(*roles):
    """Require an authenticated user holding one of ``roles``"""
    allowed = {Role(r) for r in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise AuthError('Access token required')
            if current_user.role not in allowed:
                logger.info(f"[AUTH] {current_user.username} denied for {f.__name__}")
                raise ForbiddenError('Insufficient permissions')
            return f(*args, **kwargs)
        return decorated_function
    return decorator


staff_required = roles_required(Role.ADMIN, Role.MANAGER)
admin_required = roles_required(Role.ADMIN)
