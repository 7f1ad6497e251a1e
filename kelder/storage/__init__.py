"""
Storage services holding the bytes of blobs.

A storage service only knows keys and bytes. Where the bytes end up is decided by the
PathSharder it is constructed with.
"""

from kelder.storage.base import StorageService
from kelder.storage.disk import DiskService

__all__ = ["StorageService", "DiskService"]
