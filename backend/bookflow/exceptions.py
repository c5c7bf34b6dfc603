"""
Bookflow - typed exception hierarchy.

Every failure the workflow core can report is one of these classes. The Flask
error handler turns them into the standard JSON error shape using
``status_code`` / ``error_code``; non-HTTP callers just catch them.

Usage:
    from bookflow.exceptions import InvalidTransition

    raise InvalidTransition("Order is not New", current_state=order.status.value)
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, Optional


class BookflowError(Exception):
    """Base class for every error raised by the workflow core."""

    error_code: str = 'BOOKFLOW_ERROR'
    status_code: int = 500

    def __init__(self, message: str = 'An unexpected error occurred', *, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'code': self.error_code,
            'detail': self.message,
        }
        if self.details:
            result['details'] = self.details
        return result


class ValidationError(BookflowError):
    """Malformed or missing entity fields."""

    error_code = 'VALIDATION_ERROR'
    status_code = 400

    def __init__(self, message: str = 'Validation failed', *, field: Optional[str] = None,
                 value: Any = None, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = str(value)
        self.field = field
        super().__init__(message, details=details)


class MissingArtifact(BookflowError):
    """A transition's required input (file or selection) was not supplied."""

    error_code = 'MISSING_ARTIFACT'
    status_code = 400

    def __init__(self, field: str, *, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f'{field} is required', details={'field': field})


class AuthenticationFailed(BookflowError):
    error_code = 'AUTHENTICATION_FAILED'
    status_code = 401

    def __init__(self, message: str = 'Invalid email or password'):
        super().__init__(message)


class PermissionDenied(BookflowError):
    """Actor's role or ownership does not authorise the requested action."""

    error_code = 'PERMISSION_DENIED'
    status_code = 403

    def __init__(self, message: str = 'Permission denied', *, role: Optional[str] = None,
                 action: Optional[str] = None):
        details: Dict[str, Any] = {}
        if role:
            details['role'] = role
        if action:
            details['action'] = action
        super().__init__(message, details=details)


class NotFound(BookflowError):
    error_code = 'NOT_FOUND'
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        super().__init__(f'{resource} {identifier} not found',
                         details={'resource': resource, 'id': str(identifier)})


class InvalidTransition(BookflowError):
    """The action does not apply to the order's current status."""

    error_code = 'INVALID_TRANSITION'
    status_code = 409

    def __init__(self, message: str = 'Transition not allowed in current state', *,
                 current_state: Optional[str] = None, allowed_states: Optional[Iterable[str]] = None):
        details: Dict[str, Any] = {}
        if current_state:
            details['current_state'] = current_state
        if allowed_states:
            details['allowed_states'] = sorted(allowed_states)
        super().__init__(message, details=details)


class UploadFailure(BookflowError):
    """The file storage collaborator could not store or remove a file."""

    error_code = 'UPLOAD_FAILURE'
    status_code = 502

    def __init__(self, message: str = 'File upload failed', *, path: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        details: Dict[str, Any] = {}
        if path:
            details['path'] = path
        if cause is not None:
            details['cause'] = f'{type(cause).__name__}: {cause}'
        super().__init__(message, details=details)


class PersistenceFailure(BookflowError):
    """The store rejected a read or write.

    ``category`` is one of :data:`PERSISTENCE_CATEGORIES`; callers branch on it
    instead of inspecting the backend's message text.
    """

    error_code = 'PERSISTENCE_FAILURE'
    status_code = 500

    NOT_FOUND = 'not_found'
    CONFLICT = 'conflict'
    SCHEMA_MISSING = 'schema_missing'
    BACKEND = 'backend'

    def __init__(self, message: str = 'Store rejected the operation', *, category: str = BACKEND,
                 entity: Optional[str] = None):
        self.category = category
        self.status_code = {self.NOT_FOUND: 404, self.CONFLICT: 409}.get(category, 500)
        details: Dict[str, Any] = {'category': category}
        if entity:
            details['entity'] = entity
        super().__init__(message, details=details)


PERSISTENCE_CATEGORIES = (
    PersistenceFailure.NOT_FOUND,
    PersistenceFailure.CONFLICT,
    PersistenceFailure.SCHEMA_MISSING,
    PersistenceFailure.BACKEND,
)

__all__ = [
    'BookflowError', 'ValidationError', 'MissingArtifact', 'AuthenticationFailed', 'PermissionDenied',
    'NotFound', 'InvalidTransition', 'UploadFailure', 'PersistenceFailure', 'PERSISTENCE_CATEGORIES',
]
