"""Write-once audio blob store with resolvable download URLs."""

import logging
from pathlib import Path, PurePosixPath

from services.api.src.helpline.config import settings

logger = logging.getLogger(__name__)

AUDIO_ROUTE = "/api/helpline/audio"


class StorageError(Exception):
    pass


class BlobExistsError(StorageError):
    pass


class BlobNotFoundError(StorageError):
    pass


def recording_key(message_id: str) -> str:
    return f"audio/{message_id}.wav"


def response_audio_key(response_id: str) -> str:
    return f"responses/{response_id}.wav"


def synthesized_key(message_id: str) -> str:
    return f"synth/{message_id}.wav"


class AudioStorage:
    """Filesystem-backed object store keyed by relative POSIX paths."""

    def __init__(self, root: str | Path | None = None, base_url: str | None = None):
        self.root = Path(root or settings.audio_storage_dir)
        self.base_url = (base_url if base_url is not None else settings.public_base_url).rstrip("/")

    def _path(self, key: str) -> Path:
        pure = PurePosixPath(key)
        if not key or pure.is_absolute() or ".." in pure.parts:
            raise StorageError(f"Invalid blob key: {key!r}")
        return self.root.joinpath(*pure.parts)

    def put(self, key: str, data: bytes) -> str:
        """Store `data` under `key` and return its download URL."""
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(path, "xb") as fh:
                fh.write(data)
        except FileExistsError:
            raise BlobExistsError(f"Blob already exists: {key}")

        logger.info("blob_stored", extra={"key": key, "size": len(data)})
        return self.url_for(key)

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise BlobNotFoundError(f"Blob not found: {key}")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def url_for(self, key: str) -> str:
        return f"{self.base_url}{AUDIO_ROUTE}/{key}"


_storage: AudioStorage | None = None


def get_storage() -> AudioStorage:
    """Get or create the process-wide audio store."""
    global _storage
    if _storage is None:
        _storage = AudioStorage()
    return _storage
