"""
Sharded directory layout for stored blobs.

Storing files by key alone would put hundreds of thousands of files in one directory. The
default layout therefore spreads them over short prefix directories:

    "abcdefg" => "ab/cd/abcdefg"

Sharding a tenant prefixed key the same way would give very few directories per tenant
(the prefix bytes are constant), and scatter each tenant over unrelated top level directories:

    "prj1-abcdefg" => "pr/j1/prj1-abcdefg"

Instead the tenant slug becomes a single top level directory, and only the random part of
the key is sharded below it:

    "prj1-abcdefg" => "prj1/ab/cd/prj1-abcdefg"

All files of a tenant live under one directory, which makes deleting or backing up a
tenant a single recursive operation.
"""

from kelder.errors import MalformedKey
from kelder.keys import KEY_DELIMITER, TOKEN_ALPHABET
from kelder.tenants import SLUG_PATTERN


def split_key(key: str) -> tuple[str, str]:
    """
    Split a tenant prefixed key into (tenant slug, random component).
    Raises MalformedKey if the key does not have that form.
    """
    slug, delimiter, random_component = key.partition(KEY_DELIMITER)
    if (
        not delimiter
        or not SLUG_PATTERN.match(slug)
        or not random_component
        or any(c not in TOKEN_ALPHABET for c in random_component)
    ):
        raise MalformedKey(f"Key {key!r} is not of the form <tenant slug>{KEY_DELIMITER}<token>")
    return slug, random_component


class PathSharder:
    def __init__(self, depth: int = 2, width: int = 2):
        self.depth = depth
        self.width = width

    def default_folder(self, key: str) -> str:
        """Shard directories for a key without tenant handling, e.g. "abcdefg" -> "ab/cd" """
        shards = (key[i * self.width : (i + 1) * self.width] for i in range(self.depth))
        return "/".join(shard for shard in shards if shard)

    def directory_for(self, key: str) -> str:
        """Directory holding the object, e.g. "prj1-abcdefg" -> "prj1/ab/cd" """
        if KEY_DELIMITER not in key:
            return self.default_folder(key)
        # Only the first delimiter separates the tenant slug, the random part cannot contain one
        tenant_slug, random_component = key.split(KEY_DELIMITER, 1)
        folder = self.default_folder(random_component)
        return "/".join(part for part in [tenant_slug, folder] if part)

    def folder_for(self, key: str) -> str:
        """Full relative path of the stored object, e.g. "prj1-abcdefg" -> "prj1/ab/cd/prj1-abcdefg" """
        return "/".join(part for part in [self.directory_for(key), key] if part)

    def tenant_prefix(self, slug: str) -> str:
        """The directory (or object name prefix) holding all objects of a tenant"""
        return f"{slug}/"
