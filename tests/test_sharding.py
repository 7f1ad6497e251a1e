import pytest

from kelder.errors import MalformedKey
from kelder.keys import KeyGenerator
from kelder.sharding import PathSharder, split_key


def test_default_folder():
    sharder = PathSharder()
    assert sharder.default_folder("abcdefg") == "ab/cd"
    assert sharder.folder_for("abcdefg") == "ab/cd/abcdefg"


def test_tenant_key():
    sharder = PathSharder()
    assert sharder.directory_for("prj1-abcdefg") == "prj1/ab/cd"
    assert sharder.folder_for("prj1-abcdefg") == "prj1/ab/cd/prj1-abcdefg"
    assert sharder.folder_for("tenant-abcdefg123") == "tenant/ab/cd/tenant-abcdefg123"


def test_key_without_tenant():
    sharder = PathSharder()
    assert sharder.directory_for("notenant") == "no/te"
    assert sharder.folder_for("notenant") == "no/te/notenant"


def test_shards_depend_only_on_random_component():
    sharder = PathSharder()
    keys = KeyGenerator()
    for tenant in ["acme", "test_tenant_kelder_tenant123"]:
        for _ in range(50):
            key = keys.generate_key(tenant)
            slug, random_component = key.split("-", 1)
            parts = sharder.folder_for(key).split("/")
            assert parts[0] == slug
            assert "/".join(parts[1:-1]) == sharder.default_folder(random_component)
            assert parts[-1] == key


def test_tenant_objects_share_one_directory():
    sharder = PathSharder()
    keys = KeyGenerator()
    assert {sharder.folder_for(keys.generate_key("x_acme")).split("/")[0] for _ in range(50)} == {"acme"}


def test_shard_configuration():
    assert PathSharder(depth=3, width=1).folder_for("prj1-abcdefg") == "prj1/a/b/c/prj1-abcdefg"
    assert PathSharder(depth=1, width=3).folder_for("abcdefg") == "abc/abcdefg"
    assert PathSharder(depth=0).folder_for("prj1-abcdefg") == "prj1/prj1-abcdefg"


def test_short_keys():
    sharder = PathSharder()
    assert sharder.folder_for("abc") == "ab/c/abc"
    assert sharder.folder_for("a") == "a/a"


def test_split_key():
    assert split_key("prj1-abcdefg") == ("prj1", "abcdefg")
    key = KeyGenerator().generate_key("test_tenant_kelder_tenant123")
    slug, random_component = split_key(key)
    assert slug == "tenant123"
    assert f"{slug}-{random_component}" == key


@pytest.mark.parametrize("key", ["notenant", "prj1-", "-abcdefg", "prj1-abc-def", "Prj1-abcdefg", "prj1-ABCD", "a_b-abcd"])
def test_split_malformed_key(key):
    with pytest.raises(MalformedKey):
        split_key(key)
