"""Runtime environment selection for the Salon Conversation Insights dashboard.

An Environment bundles the object storage, the database session factory and
the identity fallback the rest of the application runs against. It is built
once at process start from settings; services receive it as a parameter and
never inspect which implementation they were given.
"""

import io
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

from databricks.sdk import WorkspaceClient
from databricks.sdk.config import Config
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import Settings, get_settings
from src.models import Base

logger = logging.getLogger(__name__)

# Callback receiving (bytes_transferred, total_bytes)
TransferCallback = Callable[[int, int], None]

# Read size used when reporting transfer progress
TRANSFER_CHUNK_SIZE = 64 * 1024


class StorageError(Exception):
    """Exception raised when raw audio bytes cannot be stored."""

    pass


class ObjectStorage(Protocol):
    """Write-only object storage for raw audio files."""

    def put(
        self,
        path: str,
        data: bytes,
        on_progress: TransferCallback | None = None,
    ) -> str:
        """Store data under path and return the stored path."""
        ...


class _ProgressReader(io.BytesIO):
    """BytesIO that reports how many bytes have been read from it."""

    def __init__(self, data: bytes, on_progress: TransferCallback | None) -> None:
        super().__init__(data)
        self._total = len(data)
        self._on_progress = on_progress

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if self._on_progress is not None and chunk:
            self._on_progress(self.tell(), self._total)
        return chunk


class VolumeStorage:
    """Object storage backed by a Databricks Unity Catalog Volume."""

    def __init__(self, volume_path: str, client: WorkspaceClient | None = None) -> None:
        self.volume_path = volume_path.rstrip("/")
        self._client = client

    @property
    def client(self) -> WorkspaceClient:
        if self._client is None:
            self._client = WorkspaceClient(config=Config())
        return self._client

    def put(
        self,
        path: str,
        data: bytes,
        on_progress: TransferCallback | None = None,
    ) -> str:
        """Upload data to <volume_path>/<path> without overwriting.

        Args:
            path: Path relative to the volume root.
            data: Raw bytes to upload.
            on_progress: Optional callback receiving (bytes_sent, total_bytes).

        Returns:
            The relative path the bytes were stored under.

        Raises:
            StorageError: If the upload fails.
        """
        full_path = f"{self.volume_path}/{path}"
        try:
            self.client.files.upload(
                full_path,
                _ProgressReader(data, on_progress),
                overwrite=False,
            )
        except Exception as e:
            logger.error(f"Failed to upload {full_path}: {e}", exc_info=True)
            raise StorageError(f"Failed to upload file: {e}") from e

        logger.info(f"Uploaded {len(data)} bytes to {full_path}")
        return path


class InMemoryStorage:
    """Dict-backed object storage used by the in-memory environment."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(
        self,
        path: str,
        data: bytes,
        on_progress: TransferCallback | None = None,
    ) -> str:
        with self._lock:
            if path in self.objects:
                raise StorageError(f"Failed to upload file: {path} already exists")
            self.objects[path] = data

        if on_progress is not None:
            total = len(data)
            for sent in range(TRANSFER_CHUNK_SIZE, total, TRANSFER_CHUNK_SIZE):
                on_progress(sent, total)
            on_progress(total, total)
        return path


@dataclass(frozen=True)
class Environment:
    """Capabilities the application runs against.

    Attributes:
        name: "live" or "memory", for logging only.
        storage: Object storage for raw audio bytes.
        session_factory: Factory producing SQLAlchemy sessions.
        default_user_id: Owner id used when no forwarded identity is present.
    """

    name: str
    storage: ObjectStorage
    session_factory: sessionmaker[Session]
    default_user_id: str | None = None


def _create_memory_engine() -> Engine:
    """Create a single-connection in-memory SQLite engine with all tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


def build_environment(settings: Settings) -> Environment:
    """Build the Environment selected by settings.APP_ENVIRONMENT.

    Args:
        settings: Application settings.

    Returns:
        A live Environment (PostgreSQL + UC Volume) or an in-memory one
        (SQLite + dict storage + demo owner).
    """
    if settings.APP_ENVIRONMENT == "memory":
        logger.info("Using in-memory environment")
        engine = _create_memory_engine()
        return Environment(
            name="memory",
            storage=InMemoryStorage(),
            session_factory=sessionmaker(bind=engine),
            default_user_id=settings.DEMO_USER_ID,
        )

    logger.info("Using live environment")
    engine = create_engine(settings.database_url, pool_pre_ping=True)
    return Environment(
        name="live",
        storage=VolumeStorage(settings.VOLUME_PATH),
        session_factory=sessionmaker(bind=engine),
    )


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    """Get the process-wide Environment, building it on first use.

    Returns:
        The cached Environment instance.
    """
    return build_environment(get_settings())
