from __future__ import annotations
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Iterable, Optional

from werkzeug.utils import secure_filename

from bookflow.domain import FileRef

# What a provider hands back after a successful upload
StoredFile = FileRef


@dataclass(frozen=True)
class Upload:
    """A file supplied by the caller, not yet stored."""
    stream: BinaryIO
    filename: str
    content_type: Optional[str] = None


def safe_basename(filename: str) -> str:
    """ASCII-safe form of ``filename`` that keeps its extension.

    ``secure_filename`` drops non-ASCII characters, so ``الكتاب.pdf`` becomes
    ``file.pdf`` here instead of ``pdf``.
    """
    stem, ext = os.path.splitext(filename or '')
    safe_stem = secure_filename(stem) or 'file'
    safe_ext = secure_filename(ext.lstrip('.'))
    return f'{safe_stem}.{safe_ext}' if safe_ext else safe_stem


def destination_for(order_id: str, filename: str, now: datetime) -> str:
    """``public/<order_id>/<epoch_ms>-<token>-<filename>``; a fresh key on every call."""
    token = uuid.uuid4().hex[:8]
    return f"public/{order_id}/{int(now.timestamp() * 1000)}-{token}-{safe_basename(filename)}"


class StorageProvider:
    def upload(self, stream: BinaryIO, destination_path: str, filename: str) -> StoredFile:
        raise NotImplementedError

    def delete(self, paths: Iterable[str]) -> None:
        raise NotImplementedError

    def exists(self, path: str) -> bool:
        raise NotImplementedError
