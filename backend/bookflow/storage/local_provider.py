"""
Local filesystem storage provider.
Files land under ``base_dir`` and are served back by the ``/files`` route.
"""
import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Iterable, List
from urllib.parse import quote

from bookflow.exceptions import UploadFailure
from .provider import StorageProvider, StoredFile

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    def __init__(self, base_dir: str = "var/order-files", public_url: str = "/files"):
        self.base_dir = Path(base_dir)
        self.public_url = public_url.rstrip("/")

    def _get_path(self, key: str) -> Path:
        """Filesystem path for a storage key; keys never escape ``base_dir``."""
        clean_key = key.replace("\\", "/").lstrip("/")
        parts = [p for p in clean_key.split("/") if p not in ("", ".", "..")]
        if not parts:
            raise UploadFailure("Empty storage path", path=key)
        return self.base_dir.joinpath(*parts)

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{quote(key.lstrip('/'))}"

    def upload(self, stream: BinaryIO, destination_path: str, filename: str) -> StoredFile:
        path = self._get_path(destination_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                shutil.copyfileobj(stream, f)
        except OSError as e:
            logger.error("LocalStorageProvider: upload to %s failed: %s", destination_path, e)
            raise UploadFailure(f"Could not store {filename}", path=destination_path, cause=e)
        logger.debug("LocalStorageProvider: stored %s", destination_path)
        return StoredFile(name=filename, url=self.url_for(destination_path), path=destination_path)

    def delete(self, paths: Iterable[str]) -> None:
        """Remove every path; missing files are ignored. Raises after trying all paths."""
        failed: List[str] = []
        last_error = None
        for key in paths:
            try:
                self._get_path(key).unlink(missing_ok=True)
            except OSError as e:
                failed.append(key)
                last_error = e
        if failed:
            raise UploadFailure(f"Could not remove {len(failed)} file(s)", path=", ".join(failed), cause=last_error)

    def exists(self, path: str) -> bool:
        return self._get_path(path).is_file()

    def resolve(self, path: str) -> Path:
        return self._get_path(path)
