"""
Tests for the command executor and individual commands.
"""
from __future__ import annotations

from unittest.mock import Mock

import pytest

from mogfs.commands import (
    ExistsCommand,
    Executor,
    GetOutputStreamCommand,
    ListKeysCommand,
    RenameCommand,
)
from mogfs.errors import TrackerCommunicationError, UnknownKeyError
from mogfs.tracker.base import KeyListing

from tests.conftest import DOMAIN


class TestExecutor:
    """Borrow, run, always return the tracker."""

    def test_tracker_closed_after_success(self, tracker_factory, tracker):
        tracker.seed(DOMAIN, "k", "http://node1.test:7500/dev1/0000000001.fid", 1)
        assert Executor(tracker_factory).execute(ExistsCommand(DOMAIN, "k")) is True
        assert tracker.close_count == 1
        assert tracker_factory.borrow_count == 1

    def test_tracker_closed_after_failure(self, tracker_factory, tracker):
        with pytest.raises(UnknownKeyError):
            Executor(tracker_factory).execute(RenameCommand(DOMAIN, "missing", "other"))
        assert tracker.close_count == 1

    def test_failure_propagates_unchanged(self, tracker_factory):
        error = RuntimeError("boom")
        command = Mock()
        command.execute.side_effect = error

        with pytest.raises(RuntimeError) as exc_info:
            Executor(tracker_factory).execute(command)

        assert exc_info.value is error

    def test_close_failure_does_not_lose_result(self, tracker_factory, tracker):
        tracker.seed(DOMAIN, "k", "http://node1.test:7500/dev1/0000000001.fid", 1)
        tracker.close = Mock(side_effect=TrackerCommunicationError("connection reset"))

        assert Executor(tracker_factory).execute(ExistsCommand(DOMAIN, "k")) is True
        tracker.close.assert_called_once_with()


class TestGetOutputStreamCommand:

    def test_streams_to_first_destination(self, tracker_factory, tracker, http):
        command = GetOutputStreamCommand(DOMAIN, "k", "default", tracker_factory, http)
        stream = Executor(tracker_factory).execute(command)

        assert stream.destination.devid == 1
        stream.write(b"payload")
        stream.close()

        assert http.objects[stream.destination.url] == b"payload"
        assert tracker.get_paths(DOMAIN, "k") == [stream.destination.url]


class TestListKeysCommand:
    """Paging through list_keys."""

    def _seed(self, tracker, keys):
        for index, key in enumerate(keys):
            tracker.seed(DOMAIN, key, f"http://node1.test:7500/dev1/{index:010d}.fid", 1)

    def test_lists_keys_with_prefix(self, tracker):
        self._seed(tracker, ["img/a", "img/b", "doc/c"])
        assert ListKeysCommand(DOMAIN, "img/").execute(tracker) == ["img/a", "img/b"]

    def test_follows_pages(self, tracker):
        keys = [f"k{n:02d}" for n in range(7)]
        self._seed(tracker, keys)

        result = ListKeysCommand(DOMAIN, "k", page_size=3).execute(tracker)

        assert result == keys
        assert tracker.calls.count("list_keys") == 3

    def test_limit_stops_paging(self, tracker):
        self._seed(tracker, [f"k{n:02d}" for n in range(7)])

        result = ListKeysCommand(DOMAIN, "k", limit=4, page_size=3).execute(tracker)

        assert result == ["k00", "k01", "k02", "k03"]
        assert tracker.calls.count("list_keys") == 2

    def test_empty_listing(self, tracker):
        assert ListKeysCommand(DOMAIN, "nothing").execute(tracker) == []

    def test_passes_cursor_to_tracker(self):
        tracker = Mock()
        tracker.list_keys.side_effect = [
            KeyListing(keys=["a", "b"], next_after="b"),
            KeyListing(keys=["c"], next_after="c"),
        ]

        assert ListKeysCommand(DOMAIN, "", page_size=2).execute(tracker) == ["a", "b", "c"]
        assert tracker.list_keys.call_args_list[1].kwargs == {"after": "b", "limit": 2}
