import sys
from urllib.parse import parse_qs

import pytest

from kelder.__main__ import main
from kelder.config import Settings, StorageOptions, get_settings
from kelder.connections import CONNECTIONS
from kelder.signing import SignedReference, Signer


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["kelder", *args])
    main()


def test_create_env(monkeypatch, tmp_path, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("kelder_secret_key", raising=False)
    monkeypatch.delenv("kelder_storage_root", raising=False)
    _run(monkeypatch, "create-env", "--storage_root", str(tmp_path / "blobs"))
    assert "Created .env" in capsys.readouterr().out

    env = dict(line.split("=", 1) for line in (tmp_path / ".env").read_text().splitlines())
    assert len(env["kelder_secret_key"]) == 64
    assert env["kelder_storage_root"] == str(tmp_path / "blobs")
    assert (tmp_path / ".env").stat().st_mode & 0o777 == 0o600

    settings = Settings(_env_file=tmp_path / ".env")
    assert settings.secret_key == env["kelder_secret_key"]
    assert settings.storage_root == tmp_path / "blobs"

    with pytest.raises(SystemExit):
        _run(monkeypatch, "create-env")


def test_sign_tenant(monkeypatch, capsys):
    settings = get_settings()
    if settings.storage != StorageOptions.disk:
        pytest.skip("Storage is not configured to use the local disk")
    monkeypatch.setattr(settings, "tenants", ["test_tenant_kelder_cli"])
    monkeypatch.setattr(CONNECTIONS, "blobs", CONNECTIONS.blobs)

    _run(monkeypatch, "sign-tenant", "test_tenant_kelder_cli")
    query = parse_qs(capsys.readouterr().out.strip())
    token = query[settings.tenant_param][0]
    assert SignedReference(Signer(settings.secret_key)).verify_tenant(token) == "test_tenant_kelder_cli"

    with pytest.raises(SystemExit):
        _run(monkeypatch, "sign-tenant", "test_tenant_kelder_unknown")
