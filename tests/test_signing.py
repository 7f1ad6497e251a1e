import pytest

from kelder.errors import InvalidSignature
from kelder.signing import (
    BLOB_ID_PURPOSE,
    BLOB_KEY_PURPOSE,
    TENANT_ELEVATION_PURPOSE,
    SignedReference,
    Signer,
)

PURPOSES = [BLOB_ID_PURPOSE, TENANT_ELEVATION_PURPOSE, BLOB_KEY_PURPOSE]


@pytest.fixture()
def references():
    return SignedReference(Signer("test secret"))


def test_round_trip(references):
    for tenant, blob_id in [("test_tenant_kelder_tenant123", 10), ("public", 1), ("acme", 123456789)]:
        token = references.sign_blob_id(tenant, blob_id)
        assert references.verify_blob_id(token) == (tenant, blob_id)
        assert references.verify_tenant(references.sign_tenant(tenant)) == tenant
    assert references.verify_key(references.sign_key("acme-abcdefg")) == "acme-abcdefg"


def test_signer_payloads():
    signer = Signer("test secret")
    for payload in ["x", 1, ["a", 2], {"a": [1, 2]}, None]:
        assert signer.verify(signer.sign(payload, "test"), "test") == payload


@pytest.mark.parametrize("purpose", PURPOSES)
def test_cross_purpose_rejected(purpose):
    signer = Signer("test secret")
    token = signer.sign(["acme", 1], purpose)
    for other in PURPOSES:
        if other == purpose:
            assert signer.verify(token, other) == ["acme", 1]
        else:
            with pytest.raises(InvalidSignature):
                signer.verify(token, other)


def test_cross_purpose_references(references):
    with pytest.raises(InvalidSignature):
        references.verify_tenant(references.sign_blob_id("acme", 1))
    with pytest.raises(InvalidSignature):
        references.verify_blob_id(references.sign_tenant("acme"))
    with pytest.raises(InvalidSignature):
        references.verify_key(references.sign_tenant("acme"))


def test_tampered_tokens_rejected(references):
    token = references.sign_blob_id("test_tenant_kelder_tenant123", 10)
    for i, c in enumerate(token):
        for replacement in {"A", "b", "0", "_", "-", ".", "~"} - {c}:
            tampered = token[:i] + replacement + token[i + 1 :]
            with pytest.raises(InvalidSignature):
                references.verify_blob_id(tampered)


@pytest.mark.parametrize("token", ["", "invalid", "a.b", "a.b.c", "....", "é.é.é"])
def test_malformed_tokens_rejected(references, token):
    with pytest.raises(InvalidSignature):
        references.verify_tenant(token)


def test_wrong_secret_rejected(references):
    token = references.sign_tenant("acme")
    other = SignedReference(Signer("another secret"))
    with pytest.raises(InvalidSignature):
        other.verify_tenant(token)


def test_non_string_token_rejected(references):
    with pytest.raises(InvalidSignature):
        references.verify_tenant(None)  # type: ignore


def test_expiry():
    signer = Signer("test secret")
    assert signer.verify(signer.sign("acme", "test", seconds_valid=60), "test") == "acme"
    with pytest.raises(InvalidSignature, match="expired"):
        signer.verify(signer.sign("acme", "test", seconds_valid=-10), "test")


def test_reference_validity():
    assert SignedReference(Signer("s")).seconds_valid is None
    references = SignedReference(Signer("s"), days_valid=2, key_hours_valid=3)
    assert references.seconds_valid == 2 * 24 * 3600
    assert references.key_seconds_valid == 3 * 3600
    assert references.verify_blob_id(references.sign_blob_id("acme", 5)) == ("acme", 5)


def test_payload_shape_checked():
    signer = Signer("test secret")
    references = SignedReference(signer)
    with pytest.raises(InvalidSignature):
        references.verify_blob_id(signer.sign("acme", BLOB_ID_PURPOSE))
    with pytest.raises(InvalidSignature):
        references.verify_blob_id(signer.sign(["acme", "1"], BLOB_ID_PURPOSE))
    with pytest.raises(InvalidSignature):
        references.verify_tenant(signer.sign(["acme"], TENANT_ELEVATION_PURPOSE))


def test_empty_secret():
    with pytest.raises(ValueError):
        Signer("")
