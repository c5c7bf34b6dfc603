from __future__ import annotations
"""Identity collaborator backed by flask_jwt_extended.

Token identity is the user id (string); ``name`` and ``role`` ride along as
additional claims so every transition can be stamped without a user lookup.
"""
from flask_jwt_extended import create_access_token, get_jwt, get_jwt_identity

from bookflow.domain import Actor
from bookflow.exceptions import AuthenticationFailed, ValidationError


def issue_token(user) -> str:
    role = getattr(user.role, 'value', user.role)
    return create_access_token(identity=str(user.id), additional_claims={'name': user.name, 'role': role})


def current_actor() -> Actor:
    """Actor for the verified JWT of the current request."""
    claims = get_jwt()
    try:
        return Actor(id=str(get_jwt_identity()), name=claims.get('name'), role=claims.get('role'))
    except ValidationError:
        raise AuthenticationFailed('Token is missing identity claims')


__all__ = ['issue_token', 'current_actor']
