from flask import Blueprint, request, g
from sqlalchemy import select
from bookflow import get_db
from bookflow.decorators.auth import require_roles
from bookflow.exceptions import AuthenticationFailed, NotFound, ValidationError
from bookflow.models.user import User
from bookflow.services.identity import issue_token
from bookflow.utils.validation import optional_str

auth_bp = Blueprint('auth', __name__)


def _user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'phone': u.phone,
        'role': u.role,
        'hourly_rate': u.hourly_rate,
        'story_rate': u.story_rate,
    }


def _current_user(session) -> User:
    user = session.execute(select(User).where(User.id == g.actor.id)).scalar_one_or_none()
    if not user:
        raise NotFound('User', g.actor.id)
    return user


@auth_bp.post('/login')
def login():
    data = request.get_json(silent=True) or {}
    email = optional_str(data, 'email'); password = data.get('password')
    if not email or not password:
        raise ValidationError('email & password required', field='email')
    session = get_db()
    user = session.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()
    if not user or not user.verify_password(password):
        raise AuthenticationFailed()
    return {'access_token': issue_token(user), 'user': _user_json(user)}


@auth_bp.get('/me')
@require_roles()
def me():
    return _user_json(_current_user(get_db()))


@auth_bp.put('/me')
@require_roles()
def update_me():
    """Self-service profile edit. Email or password changes need the current password."""
    data = request.get_json(silent=True) or {}
    session = get_db()
    user = _current_user(session)
    if 'role' in data and data['role'] != user.role:
        raise ValidationError('role cannot be changed here', field='role')
    new_email = optional_str(data, 'email')
    new_password = data.get('new_password') or None
    email_changes = new_email is not None and new_email.lower() != user.email
    if email_changes or new_password:
        if not user.verify_password(data.get('old_password') or ''):
            raise AuthenticationFailed('Current password is incorrect')
    if email_changes:
        taken = session.execute(select(User).where(User.email == new_email.lower(), User.id != user.id)).scalar_one_or_none()
        if taken:
            raise ValidationError('email already in use', field='email')
        user.email = new_email.lower()
    if new_password:
        if len(new_password) < 6:
            raise ValidationError('new_password must be at least 6 characters', field='new_password')
        user.set_password(new_password)
    name = optional_str(data, 'name')
    if name:
        user.name = name
    if 'phone' in data:
        user.phone = optional_str(data, 'phone') or ''
    session.commit()
    return _user_json(user)
