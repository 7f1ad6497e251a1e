"""
Signed references to blobs and tenants

Tokens are compact JSON Web Signatures (HS256) over a JSON payload that carries the signed data and
the purpose of the token. A token is only accepted for the purpose it was minted for, so a signed blob
id cannot be replayed as a tenant elevation token or vice versa. Tokens do not expire unless
days_valid is given; rotating the secret key revokes all of them.
"""

import base64
import binascii
import json
import logging
import re
from datetime import datetime
from typing import Any

from authlib.jose import JsonWebSignature
from authlib.jose.errors import JoseError

from kelder.errors import InvalidSignature

logger = logging.getLogger("kelder.signing")

BLOB_ID_PURPOSE = "blob_id_with_tenant"
TENANT_ELEVATION_PURPOSE = "controller_tenant_elevation"
BLOB_KEY_PURPOSE = "blob_key"

_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+$")


def now() -> int:
    """Current time in seconds since epoch"""
    return int(datetime.now().timestamp())


def _is_canonical(segment: str) -> bool:
    """Check that a base64url segment decodes and re-encodes to itself (no ignored trailing bits)"""
    if not _SEGMENT.match(segment):
        return False
    try:
        decoded = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError):
        return False
    return base64.urlsafe_b64encode(decoded).rstrip(b"=").decode("ascii") == segment


class Signer:
    """Sign and verify purpose tagged payloads with a shared secret"""

    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError("Cannot sign tokens without a secret key")
        self.secret_key = secret_key
        self.jws = JsonWebSignature(algorithms=["HS256"])

    def sign(self, payload: Any, purpose: str, seconds_valid: int | None = None) -> str:
        """
        Create a token for this (json serializable) payload
        :param purpose: the context this token may be used in
        :param seconds_valid: the number of seconds from now that the token should be valid, or None for no expiry
        """
        body: dict[str, Any] = {"pur": purpose, "data": payload}
        if seconds_valid is not None:
            body["exp"] = now() + seconds_valid
        header = {"alg": "HS256"}
        token = self.jws.serialize_compact(header, json.dumps(body).encode("utf-8"), self.secret_key)
        return token.decode("ascii")

    def verify(self, token: str, purpose: str) -> Any:
        """
        Check the token and return the signed payload
        Raises InvalidSignature if the token is malformed, tampered with, expired or minted for another purpose
        """
        if not isinstance(token, str):
            raise InvalidSignature("Token should be a string")
        segments = token.split(".")
        if len(segments) != 3 or not all(_is_canonical(s) for s in segments):
            raise InvalidSignature("Malformed token")
        try:
            result = self.jws.deserialize_compact(token, self.secret_key)
            body = json.loads(result["payload"].decode("utf-8"))
        except (JoseError, ValueError) as e:
            logger.warning(f"Rejected token for {purpose}: {e}")
            raise InvalidSignature(f"Token verification failed: {e}") from e
        if not isinstance(body, dict) or "data" not in body:
            raise InvalidSignature("Malformed token payload")
        if body.get("pur") != purpose:
            raise InvalidSignature(f"Token was not signed for {purpose}")
        if "exp" in body and body["exp"] < now():
            raise InvalidSignature("Token expired")
        return body["data"]


class SignedReference:
    """
    Tokens handed out to clients that identify a blob, a tenant, or a stored key.
    """

    def __init__(self, signer: Signer, days_valid: int | None = None, key_hours_valid: int = 1):
        self.signer = signer
        self.seconds_valid = days_valid * 24 * 60 * 60 if days_valid else None
        self.key_seconds_valid = key_hours_valid * 60 * 60

    def sign_blob_id(self, tenant: str, blob_id: int) -> str:
        return self.signer.sign([tenant, blob_id], BLOB_ID_PURPOSE, self.seconds_valid)

    def verify_blob_id(self, token: str) -> tuple[str, int]:
        data = self.signer.verify(token, BLOB_ID_PURPOSE)
        if not (isinstance(data, list) and len(data) == 2 and isinstance(data[0], str) and isinstance(data[1], int)):
            raise InvalidSignature("Signed blob id should contain a tenant and an id")
        tenant, blob_id = data
        return tenant, blob_id

    def sign_tenant(self, tenant: str) -> str:
        return self.signer.sign(tenant, TENANT_ELEVATION_PURPOSE, self.seconds_valid)

    def verify_tenant(self, token: str) -> str:
        tenant = self.signer.verify(token, TENANT_ELEVATION_PURPOSE)
        if not isinstance(tenant, str):
            raise InvalidSignature("Signed tenant name should be a string")
        return tenant

    def sign_key(self, key: str) -> str:
        return self.signer.sign(key, BLOB_KEY_PURPOSE, self.key_seconds_valid)

    def verify_key(self, token: str) -> str:
        key = self.signer.verify(token, BLOB_KEY_PURPOSE)
        if not isinstance(key, str):
            raise InvalidSignature("Signed key should be a string")
        return key
