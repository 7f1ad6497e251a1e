import pytest

from kelder.keys import KEY_DELIMITER, TOKEN_ALPHABET, TOKEN_LENGTH, KeyGenerator, generate_token
from kelder.tenants import tenant_slug


@pytest.mark.parametrize(
    "tenant,slug",
    [
        ("a_long_tenant_db_name", "name"),
        ("test_tenant_kelder_tenant123", "tenant123"),
        ("public", "public"),
        ("acme", "acme"),
        ("x_1", "1"),
    ],
)
def test_tenant_slug(tenant, slug):
    assert tenant_slug(tenant) == slug
    assert tenant_slug(tenant) == tenant_slug(tenant)


@pytest.mark.parametrize("tenant", ["", "Acme", "acme-corp", "acme_", "_acme", "acme__corp", "ac me", "acme/1"])
def test_invalid_tenant_slug(tenant):
    with pytest.raises(ValueError):
        tenant_slug(tenant)


def test_generate_token():
    token = generate_token()
    assert len(token) == TOKEN_LENGTH
    assert set(token) <= set(TOKEN_ALPHABET)
    assert KEY_DELIMITER not in TOKEN_ALPHABET
    assert generate_token() != token


def test_generate_key():
    keys = KeyGenerator()
    for tenant in ["test_tenant_kelder_tenant123", "public", "a_b_c"]:
        slug = tenant_slug(tenant)
        for _ in range(20):
            key = keys.generate_key(tenant)
            assert key.startswith(slug + KEY_DELIMITER)
            suffix = key[len(slug) + 1 :]
            assert KEY_DELIMITER not in suffix
            assert len(suffix) == TOKEN_LENGTH
    assert len({keys.generate_key("acme") for _ in range(100)}) == 100


def test_generate_key_retries_on_collision():
    seen = []

    def exists(key):
        seen.append(key)
        return len(seen) < 3

    key = KeyGenerator(exists=exists).generate_key("acme")
    assert len(seen) == 3
    assert key == seen[-1]


def test_generate_key_gives_up():
    with pytest.raises(RuntimeError):
        KeyGenerator(exists=lambda key: True, attempts=3).generate_key("acme")


def test_generate_key_invalid_tenant():
    with pytest.raises(ValueError):
        KeyGenerator().generate_key("not-a-tenant")
