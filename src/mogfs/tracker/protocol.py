"""
Tracker line protocol.

Requests are a command name followed by URL-encoded arguments::

    get_paths domain=media&key=cover.jpg&noverify=1\r\n

Responses are either ``OK <urlencoded args>`` or
``ERR <code> <urlencoded description>``.
"""
from __future__ import annotations

from typing import Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, unquote_plus, urlencode

from ..errors import TrackerError

__all__ = ["encode_request", "parse_response", "numbered_values", "TrackerResponseError"]

LINE_END = "\r\n"


class TrackerResponseError(TrackerError):
    """An ERR line from the tracker, not yet mapped to a more specific error."""
    pass


def encode_request(command: str, args: Mapping[str, object]) -> bytes:
    """
    Encode one request line.

    ``None`` values are dropped; everything else is sent as ``str(value)``.
    """
    if not command or " " in command:
        raise ValueError(f"Invalid tracker command: {command!r}")
    pairs = [(name, str(value)) for name, value in args.items() if value is not None]
    return f"{command} {urlencode(pairs)}{LINE_END}".encode("utf-8")


def parse_response(line: str) -> Dict[str, str]:
    """
    Decode one response line.

    Returns:
        Arguments of an OK response

    Raises:
        TrackerResponseError: For ERR responses (``code`` holds the tracker code)
        TrackerError: For lines that are neither OK nor ERR
    """
    line = line.rstrip("\r\n")
    if line == "OK" or line.startswith("OK "):
        payload = line[3:]
        return dict(parse_qsl(payload, keep_blank_values=True))

    if line.startswith("ERR "):
        parts = line[4:].split(" ", 1)
        code = parts[0]
        description = unquote_plus(parts[1]) if len(parts) > 1 else ""
        message = f"{code}: {description}" if description else code
        raise TrackerResponseError(message, code=code)

    raise TrackerError(f"Unexpected tracker response: {line!r}")


def numbered_values(args: Mapping[str, str], prefix: str, count_field: str) -> List[str]:
    """
    Collect ``<prefix>1..<prefix>N`` values where N is ``args[count_field]``.

    Missing entries are skipped.
    """
    count = _to_int(args.get(count_field), default=0)
    values = []
    for index in range(1, count + 1):
        value = args.get(f"{prefix}{index}")
        if value:
            values.append(value)
    return values


def _to_int(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise TrackerError(f"Expected an integer in tracker response, got {value!r}") from e
