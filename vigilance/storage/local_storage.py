import re
import uuid
from pathlib import Path
from urllib.parse import quote

from vigilance.storage.base import BaseStorage
from vigilance.storage.exceptions import InvalidStoragePathError, StorageError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def document_storage_path(user_id: str, object_id: str, filename: str) -> str:
    """Relative path of an upload: {user_id}/{object_id}_{safe filename}"""
    safe_name = _UNSAFE_CHARS.sub("_", Path(filename).name) or "document.pdf"
    return f"{user_id}/{object_id}_{safe_name}"


class LocalStorage(BaseStorage):
    """Stores uploads on the local filesystem under a root directory."""

    FILES_ROOT = Path("/app/files")

    def __init__(
        self,
        files_root: Path | None = None,
        public_base_url: str = "http://localhost:8000/files",
    ) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._public_base_url = public_base_url.rstrip("/")

    def upload(self, data: bytes, filename: str, user_id: str) -> str:
        path = document_storage_path(user_id, uuid.uuid4().hex, filename)
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to store {path}: {exc}") from exc
        return path

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.exists():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def delete(self, path: str) -> None:
        try:
            self._resolve(path).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}") from exc

    def public_url(self, path: str) -> str:
        self._resolve(path)
        return f"{self._public_base_url}/{quote(path)}"

    def _resolve(self, path: str) -> Path:
        root = self._files_root.resolve()
        target = (root / path).resolve()
        if not target.is_relative_to(root) or target == root:
            raise InvalidStoragePathError(f"Path '{path}' is outside the storage root")
        return target
