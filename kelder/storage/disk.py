"""
Store blobs on the local disk, in sharded tenant directories below a root directory.

File system calls run in a worker thread, outside the event loop.
"""

import logging
import shutil
from pathlib import Path

from anyio import to_thread

from kelder.sharding import PathSharder
from kelder.storage.base import StorageService

logger = logging.getLogger("kelder.storage")


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # Write to a temporary name first, so readers never see a partial file
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_bytes(data)
    tmp.replace(path)


class DiskService(StorageService):
    name = "disk"

    def __init__(self, root: Path | str, sharder: PathSharder | None = None):
        super().__init__(sharder or PathSharder())
        self.root = Path(root)

    def path_on_disk(self, key: str) -> Path:
        return self.root / self.path_for(key)

    async def upload(self, key: str, data: bytes) -> None:
        await to_thread.run_sync(_write_file, self.path_on_disk(key), data)

    async def download(self, key: str) -> bytes:
        path = self.path_on_disk(key)
        try:
            return await to_thread.run_sync(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError):
            raise FileNotFoundError(f"Object {key} not found in {self.root}")

    async def exists(self, key: str) -> bool:
        return await to_thread.run_sync(self.path_on_disk(key).is_file)

    async def delete(self, key: str) -> None:
        await to_thread.run_sync(lambda: self.path_on_disk(key).unlink(missing_ok=True))

    async def delete_prefix(self, prefix: str) -> None:
        folder = self.root / prefix.strip("/")
        if not prefix.strip("/") or not folder.resolve().is_relative_to(self.root.resolve()):
            raise ValueError(f"Refusing to delete {prefix!r} outside of the storage root")
        if folder.is_dir():
            logger.info(f"Deleting all objects below {folder}")
            await to_thread.run_sync(shutil.rmtree, folder)
