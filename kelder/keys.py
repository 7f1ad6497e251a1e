"""
Tenant prefixed storage keys

Keys have the form <tenant slug>-<random token>. The slash is not used as a delimiter because
storage backends treat it differently: sometimes it is significant, sometimes it gets escaped
as a path component. The dash never occurs in a slug nor in the token, so the split is unambiguous.
"""

import secrets
import string
from typing import Callable

from kelder.tenants import tenant_slug

KEY_DELIMITER = "-"
TOKEN_ALPHABET = string.digits + string.ascii_lowercase
TOKEN_LENGTH = 28


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """Secure random base36 token"""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


class KeyGenerator:
    def __init__(self, exists: Callable[[str], bool] | None = None, length: int = TOKEN_LENGTH, attempts: int = 5):
        """
        :param exists: optional check whether a key is already in use, generation is retried on collision
        :param length: length of the random token
        :param attempts: number of tries before giving up
        """
        self.exists = exists
        self.length = length
        self.attempts = attempts

    def generate_key(self, tenant: str) -> str:
        slug = tenant_slug(tenant)
        for _ in range(self.attempts):
            key = f"{slug}{KEY_DELIMITER}{generate_token(self.length)}"
            if self.exists is not None and self.exists(key):
                continue  # collision, try again
            return key
        raise RuntimeError(f"Failed to generate a unique key for tenant {tenant}")
