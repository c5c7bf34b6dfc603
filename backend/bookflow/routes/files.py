from flask import Blueprint, abort, send_file
from bookflow import get_storage
from bookflow.exceptions import UploadFailure

files_bp = Blueprint('files', __name__)


@files_bp.get('/<path:key>')
def serve_file(key: str):
    """Public URLs handed out for stored artifacts resolve here."""
    storage = get_storage()
    try:
        if not storage.exists(key):
            abort(404)
        path = storage.resolve(key)
    except UploadFailure:
        abort(404)
    return send_file(path.resolve())
