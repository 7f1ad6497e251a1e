from abc import ABC, abstractmethod

from kelder.sharding import PathSharder


class StorageService(ABC):
    """Interface for the services storing blob contents"""

    name: str

    def __init__(self, sharder: PathSharder):
        self.sharder = sharder

    def path_for(self, key: str) -> str:
        """Relative location of the object with this key"""
        return self.sharder.folder_for(key)

    @abstractmethod
    async def upload(self, key: str, data: bytes) -> None:
        pass

    @abstractmethod
    async def download(self, key: str) -> bytes:
        """Return the contents of the object, raises FileNotFoundError if it does not exist"""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> None:
        """Delete all objects stored below this path prefix, e.g. all objects of one tenant"""
