"""Tests for the exchange store HTTP application."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from k8scc.fileserver.app import (
    FileServerSettings,
    _resolve,
    create_app,
    parse_address,
)


@pytest.fixture
def shared(tmp_path: Path) -> Path:
    return tmp_path / "shared"


@pytest.fixture
def client(shared: Path) -> TestClient:
    return TestClient(create_app(shared))


class TestFileServer:
    def test_post_then_get(self, client: TestClient, shared: Path):
        resp = client.post("/1860815d78/chaincode-source.tar", content=b"tar-bytes")
        assert resp.status_code == 200
        assert resp.json() == {"path": "/1860815d78/chaincode-source.tar", "size": 9}
        assert (shared / "1860815d78" / "chaincode-source.tar").read_bytes() == b"tar-bytes"

        resp = client.get("/1860815d78/chaincode-source.tar")
        assert resp.status_code == 200
        assert resp.content == b"tar-bytes"

    def test_put_creates_nested_dirs(self, client: TestClient, shared: Path):
        resp = client.put("/a/b/c/file.bin", content=b"x")
        assert resp.status_code == 200
        assert (shared / "a" / "b" / "c" / "file.bin").is_file()

    def test_last_write_wins(self, client: TestClient):
        client.post("/id/out.tar", content=b"first")
        client.post("/id/out.tar", content=b"second")
        assert client.get("/id/out.tar").content == b"second"

    def test_missing_file(self, client: TestClient):
        assert client.get("/nope/chaincode-output.tar").status_code == 404

    def test_root_rejected(self, client: TestClient):
        assert client.post("/", content=b"x").status_code == 400

    def test_traversal_rejected(self, shared: Path):
        shared.mkdir(parents=True)
        with pytest.raises(HTTPException) as info:
            _resolve(shared.resolve(), "../escape.txt")
        assert info.value.status_code == 400


class TestParseAddress:
    def test_port_only(self):
        assert parse_address(":8080") == ("0.0.0.0", 8080)

    def test_host_and_port(self):
        assert parse_address("127.0.0.1:9000") == ("127.0.0.1", 9000)

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_address("localhost")


class TestFileServerSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CHAINCODE_SHARED_DIR", raising=False)
        monkeypatch.delenv("HTTP_ADDRESS", raising=False)
        s = FileServerSettings()
        assert s.http_address == ":8080"

    def test_legacy_env(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("CHAINCODE_SHARED_DIR", str(tmp_path))
        monkeypatch.setenv("HTTP_ADDRESS", ":9999")
        s = FileServerSettings()
        assert s.shared_dir == tmp_path
        assert s.http_address == ":9999"

    def test_prefixed_env(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("K8SCC_FILESERVER_SHARED_DIR", str(tmp_path))
        monkeypatch.setenv("CHAINCODE_SHARED_DIR", "/elsewhere")
        assert FileServerSettings().shared_dir == tmp_path

    def test_unprefixed_names_ignored(self, monkeypatch):
        monkeypatch.delenv("K8SCC_FILESERVER_SHARED_DIR", raising=False)
        monkeypatch.delenv("CHAINCODE_SHARED_DIR", raising=False)
        monkeypatch.setenv("SHARED_DIR", "/stray")
        assert FileServerSettings().shared_dir == Path("/var/hyperledger/k8scc")
