"""
Tests for MogileClient.
"""
from __future__ import annotations

from unittest.mock import Mock

import pytest

from mogfs.client import MogileClient
from mogfs.errors import TransportError
from mogfs.fakes import create_fake_client
from mogfs.tracker.client import SocketTrackerFactory
from mogfs.transport.http import HttpConnectionFactory

from tests.conftest import DOMAIN


class TestGetFile:

    def test_handle_uses_client_defaults(self, client):
        file = client.get_file("a.txt")
        assert file.key == "a.txt"
        assert file.domain == DOMAIN
        assert file.storage_class == "default"

    def test_overrides(self, client):
        file = client.get_file("a.txt", domain="other", storage_class="archive")
        assert file.domain == "other"
        assert file.storage_class == "archive"

    def test_each_handle_has_its_own_lock(self, client):
        first = client.get_file("a.txt")
        second = client.get_file("a.txt")
        assert first is not second
        assert first.lock is not second.lock

    def test_empty_key_raises(self, client):
        with pytest.raises(ValueError, match="key is required"):
            client.get_file("")

    def test_domain_required(self, tracker_factory, http):
        with pytest.raises(ValueError, match="domain is required"):
            MogileClient(tracker_factory, http, "")


class TestListFiles:

    def test_list_files(self, client):
        for key in ("logs/1", "logs/2", "img/1"):
            client.get_file(key).put(b"x")

        files = client.list_files("logs/")

        assert [file.key for file in files] == ["logs/1", "logs/2"]
        assert all(file.domain == DOMAIN for file in files)

    def test_limit(self, client):
        for key in ("logs/1", "logs/2", "logs/3"):
            client.get_file(key).put(b"x")
        assert [file.key for file in client.list_files("logs/", limit=2)] == ["logs/1", "logs/2"]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_invalid_limit(self, client, limit):
        with pytest.raises(ValueError):
            client.list_files("", limit=limit)


class TestCopyFromFile:

    def test_uploads_local_file(self, client, tmp_path):
        source = tmp_path / "data.bin"
        source.write_bytes(b"\x00\x01" * 5000)
        file = client.get_file("data.bin")

        client.copy_from_file(source, file)

        assert file.length() == 10000
        with file.get_input_stream() as stream:
            assert stream.read() == b"\x00\x01" * 5000

    def test_failed_upload_is_aborted(self, client, http, tracker, tmp_path):
        source = tmp_path / "data.bin"
        source.write_bytes(b"data")
        http.failing_writes.add("node1.test")
        file = client.get_file("data.bin")

        with pytest.raises(TransportError):
            client.copy_from_file(source, file)

        assert "finalize" not in tracker.calls
        assert not file.lock.write_locked

    def test_missing_source_takes_no_lock(self, client, tracker, tmp_path):
        file = client.get_file("data.bin")
        with pytest.raises(FileNotFoundError):
            client.copy_from_file(tmp_path / "missing", file)
        assert tracker.calls == []
        assert not file.lock.write_locked


class TestClientLifecycle:

    def test_from_settings_builds_real_factories(self, settings):
        client = MogileClient.from_settings(settings)
        try:
            assert isinstance(client.tracker_factory, SocketTrackerFactory)
            assert isinstance(client.http_factory, HttpConnectionFactory)
            assert client.domain == DOMAIN
            assert client.storage_class == "default"
        finally:
            client.close()

    def test_from_env(self):
        with MogileClient.from_env() as client:
            assert client.domain == DOMAIN
            assert client.storage_class is None

    def test_close_closes_factories(self):
        tracker_factory = Mock()
        http_factory = Mock()
        client = MogileClient(tracker_factory, http_factory, DOMAIN)

        with client:
            pass

        tracker_factory.close.assert_called_once()
        http_factory.close.assert_called_once()

    def test_close_without_close_methods(self, client):
        client.close()

    def test_fake_client_is_seeded(self):
        client = create_fake_client()
        with client.get_file("hello.txt").get_input_stream() as stream:
            assert stream.read() == b"hello world\n"
