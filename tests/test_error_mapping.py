"""
Test error mapping and CLI exit code functionality.

Validates that exceptions are correctly mapped to exit codes and that
the run_and_exit wrapper handles errors appropriately for CLI commands.
"""
from __future__ import annotations

import pytest
import typer

from mogfs.errors import (
    KeyExistsAlreadyError,
    MogfsError,
    NoDestinationsError,
    TrackerCommunicationError,
    TrackerError,
    TransportError,
    UnknownKeyError,
)
from mogfs.operations.mappers import EXIT_CODES, FALLBACK_EXIT_CODE, exit_code_for, run_and_exit


class TestErrorHierarchy:
    """All client failures are I/O errors."""

    @pytest.mark.parametrize("error", [
        TransportError("refused", url="http://node1.test/x"),
        TrackerError("bad response"),
        KeyExistsAlreadyError("media", "k"),
        UnknownKeyError("media", "k"),
        NoDestinationsError("none", code="no_devices"),
        TrackerCommunicationError("down"),
    ])
    def test_errors_are_oserrors(self, error):
        assert isinstance(error, MogfsError)
        assert isinstance(error, OSError)

    def test_key_errors_carry_domain_and_key(self):
        error = KeyExistsAlreadyError("media", "a/b.jpg")
        assert error.domain == "media"
        assert error.key == "a/b.jpg"
        assert error.code == "key_exists"
        assert "domain=media,key=a/b.jpg" in str(error)

        assert UnknownKeyError("media", "k").code == "unknown_key"

    def test_transport_error_details(self):
        error = TransportError("HTTP 500", url="http://node1.test/x", status_code=500)
        assert error.url == "http://node1.test/x"
        assert error.status_code == 500


class TestExitCodeMapping:
    """Test exception to exit code mapping."""

    def test_known_exceptions_mapped_correctly(self):
        assert exit_code_for(UnknownKeyError("media", "k")) == 1
        assert exit_code_for(ValueError("bad input")) == 2
        assert exit_code_for(TransportError("refused")) == 3
        assert exit_code_for(KeyExistsAlreadyError("media", "k")) == 4
        assert exit_code_for(NoDestinationsError("none")) == 5

    def test_subclasses_use_nearest_mapping(self):
        """Unmapped subclasses fall back to their closest mapped base class."""
        assert exit_code_for(TrackerCommunicationError("down")) == 3
        assert exit_code_for(TrackerError("bad response")) == 3

        class CustomValueError(ValueError):
            pass

        assert exit_code_for(CustomValueError("x")) == 2

    def test_standard_exceptions_use_fallback(self):
        assert exit_code_for(RuntimeError("test")) == FALLBACK_EXIT_CODE
        assert exit_code_for(FileNotFoundError("test")) == FALLBACK_EXIT_CODE
        assert exit_code_for(PermissionError("test")) == FALLBACK_EXIT_CODE

    def test_exit_code_completeness(self):
        assert set(EXIT_CODES.keys()) == {
            "UnknownKeyError",
            "ValueError",
            "MogfsError",
            "KeyExistsAlreadyError",
            "NoDestinationsError",
        }


class TestRunAndExit:
    """Test run_and_exit wrapper functionality."""

    def test_successful_function_returns_result(self):
        assert run_and_exit(lambda: "success result") == "success result"

    def test_function_exception_raises_typer_exit(self, capsys):
        def failing_func():
            raise UnknownKeyError("media", "missing.jpg")

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(failing_func)

        assert exc_info.value.exit_code == 1
        assert "Error: UnknownKeyError: domain=media,key=missing.jpg" in capsys.readouterr().err

    def test_exception_chaining_preserved(self):
        original_error = ValueError("original error")

        def failing_func():
            raise original_error

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(failing_func)

        assert exc_info.value.__cause__ is original_error

    def test_exit_code_consistency_across_calls(self):
        exit_codes = []
        for _ in range(3):
            with pytest.raises(typer.Exit) as exc_info:
                run_and_exit(lambda: (_ for _ in ()).throw(KeyExistsAlreadyError("media", "k")))
            exit_codes.append(exc_info.value.exit_code)

        assert exit_codes == [4, 4, 4]
