import json
import logging
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Union

from bookshelf.models import BackupInfo

logger = logging.getLogger(__name__)

BACKUP_MARKER = "_backup_"


class StorageError(Exception):
    """Raised when the JSON data files cannot be read or written."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class JsonStorage:
    """Flat JSON files kept in a single data directory."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def ensure_data_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def read(self, filename: str) -> Any:
        """Load *filename*; a missing file is created as an empty list."""
        self.ensure_data_dir()
        path = self.data_dir / filename

        if not path.exists():
            logger.info(f"Data file not found, creating empty {path}")
            path.write_text("[]", encoding="utf-8")
            return []

        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading JSON file {path}: {e}")
            raise StorageError(f"Failed to read data from {filename}") from e

    def write(self, filename: str, data: Any) -> None:
        self.ensure_data_dir()
        path = self.data_dir / filename
        try:
            with path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as e:
            logger.error(f"Error writing JSON file {path}: {e}")
            raise StorageError(f"Failed to write data to {filename}") from e

    def backup(self, filename: str) -> str:
        """Copy *filename* next to itself and return the backup's file name."""
        self.ensure_data_dir()
        path = self.data_dir / filename
        if not path.exists():
            logger.error(f"Cannot back up missing file {path}")
            raise StorageError(f"Failed to backup {filename}")

        backup_name = f"{path.stem}{BACKUP_MARKER}{int(time.time() * 1000)}.json"
        try:
            shutil.copyfile(path, self.data_dir / backup_name)
        except OSError as e:
            logger.error(f"Error backing up {path}: {e}")
            raise StorageError(f"Failed to backup {filename}") from e

        logger.info(f"Backup created: {backup_name}")
        return backup_name

    def list_backups(self) -> List[BackupInfo]:
        """Backups in the data directory, newest first."""
        self.ensure_data_dir()
        backups = []
        for path in self.data_dir.iterdir():
            if not _is_backup_name(path.name):
                continue
            stat = path.stat()
            backups.append(BackupInfo(
                filename=path.name,
                created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                size=stat.st_size,
            ))

        backups.sort(key=lambda b: (b.created_at, b.filename), reverse=True)
        return backups

    def backup_path(self, filename: str) -> Path:
        """Resolve a backup by name, refusing anything outside the data directory."""
        if ".." in filename or "/" in filename or "\\" in filename:
            raise StorageError("Invalid filename", status_code=400)
        if not _is_backup_name(filename):
            raise StorageError("Invalid backup file", status_code=400)

        path = self.data_dir / filename
        if not path.is_file():
            raise StorageError("Backup file not found", status_code=404)
        return path

    def import_file(self, source: Union[str, Path], filename: str) -> None:
        """Replace *filename* with the JSON file at *source*, backing up the current one."""
        source = Path(source)
        if not source.is_file():
            raise StorageError(f"Import file at {source} does not exist", status_code=400)

        try:
            with source.open(encoding="utf-8") as f:
                json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Rejected import from {source}: {e}")
            raise StorageError("Import file does not contain valid JSON", status_code=400) from e

        self.ensure_data_dir()
        if (self.data_dir / filename).exists():
            self.backup(filename)

        try:
            shutil.copyfile(source, self.data_dir / filename)
        except OSError as e:
            logger.error(f"Error importing {source} into {filename}: {e}")
            raise StorageError(f"Failed to import to {filename}") from e
        logger.info(f"Imported {source} into {filename}")


def _is_backup_name(name: str) -> bool:
    return BACKUP_MARKER in name and name.endswith(".json")
