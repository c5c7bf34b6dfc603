from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from flask import request, make_response
from bookflow.config.pagination import normalize_pagination
import hashlib
from datetime import datetime, timezone
from email.utils import format_datetime


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def apply_pagination(rows: Sequence[Any]) -> Tuple[List[Any], int, int, int]:
    """Slice an already-filtered list using ``limit``/``offset`` query args."""
    limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    return list(rows[offset:offset + limit]), len(rows), limit, offset


def compute_etag(fingerprints: Iterable[Any], total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None) -> str:
    stamp = latest_ts.isoformat() if isinstance(latest_ts, datetime) else ''
    seed = f"{list(fingerprints)}|{total}|{limit}|{offset}|{stamp}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int) -> Dict[str, Any]:
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows),
        },
    }


def make_cached_list_response(rows: list, etag: str, total: int, limit: int, offset: int,
                              latest_ts: Optional[datetime] = None):
    resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    if isinstance(latest_ts, datetime):
        resp.headers['Last-Modified'] = format_datetime(canonicalize_timestamp(latest_ts), usegmt=True)
    return resp


def handle_conditional(etag_value: str):
    """304 response when ``If-None-Match`` carries the current ETag, else None."""
    inm = request.headers.get('If-None-Match')
    if not inm:
        return None
    candidates = {v.strip().strip('"') for v in inm.split(',')}
    if etag_value in candidates or '*' in candidates:
        resp = make_response('', 304)
        resp.headers['ETag'] = etag_value
        return resp
    return None
