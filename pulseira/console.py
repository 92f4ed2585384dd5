"""Line console accepting a pairing key typed by the user."""

from __future__ import annotations

import logging
import queue
import re
from typing import Callable, Optional, Sequence, TextIO

_log = logging.getLogger(__name__)

BLE_RX_TIMEOUT = 30.0
MAX_LINE_LENGTH = 255

_INT_PREFIX = re.compile(r"\s*[+-]?\d+")


class KeyConsole:
    """Accepts ``key <value>`` commands and hands the key to a waiting reader.

    A value starting with a letter counts as a yes/no answer (1 for ``y`` or
    ``yes``, 0 otherwise); any other value is read as a number. Only one key is
    held at a time; keys entered while one is pending are dropped.
    """

    def __init__(self) -> None:
        self._keys: "queue.Queue[int]" = queue.Queue(maxsize=1)
        self._commands: dict[str, Callable[[Sequence[str]], int]] = {
            "key": self.enter_passkey,
        }

    def enter_passkey(self, args: Sequence[str]) -> int:
        """Handle ``key <value>``; ``args`` includes the command name. Returns the key."""
        if len(args) != 2:
            raise ValueError("usage: key <value>")
        pkey = args[1].split()[0] if args[1].split() else ""
        _log.info("You entered %s %s", args[0], args[1])
        if pkey[:1].isalpha():
            key = 1 if pkey.lower() in ("y", "yes") else 0
        else:
            match = _INT_PREFIX.match(pkey)
            if match is None:
                raise ValueError(f"not a key: {pkey!r}")
            key = int(match.group())
        try:
            self._keys.put_nowait(key)
        except queue.Full:
            _log.warning("key %d dropped, one is already pending", key)
        return key

    def run_command(self, line: str) -> int:
        """Run one command line and return its result."""
        args = line.split()
        if not args:
            raise ValueError("empty command line")
        command = self._commands.get(args[0])
        if command is None:
            raise ValueError(f"unknown command: {args[0]}")
        return command(args)

    def receive_key(self, timeout: Optional[float] = BLE_RX_TIMEOUT) -> int:
        """Wait for a key; raise TimeoutError if none arrives in time."""
        try:
            return self._keys.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no key entered") from None

    def serve(self, stream: TextIO, echo: Optional[TextIO] = None) -> int:
        """Read commands from ``stream`` until it ends; return how many were run.

        Lines end at a carriage return or after 255 characters; the last
        character of each line is dropped. Characters are echoed to ``echo``
        when given, a carriage return as CR LF.
        """
        count = 0
        line = ""
        while True:
            ch = stream.read(1)
            if not ch:
                return count
            if echo is not None:
                echo.write("\r\n" if ch == "\r" else ch)
            line += ch
            if ch != "\r" and len(line) < MAX_LINE_LENGTH:
                continue
            command, line = line[:-1], ""
            try:
                self.run_command(command)
            except ValueError as exc:
                _log.warning("command failed: %s", exc)
                continue
            count += 1