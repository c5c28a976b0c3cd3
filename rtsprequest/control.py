# Copyright (c) 2025 rtsprequest contributors
# This file is part of rtsprequest.
#
# rtsprequest is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""Stop signals awaited while a stream is playing."""

import logging
import os
import sys
from typing import Optional, TextIO

from tornado import locks
from tornado.concurrent import Future, future_set_result_unless_cancelled
from tornado.ioloop import IOLoop


class StopSignal:
    """Something the session waits for before tearing the stream down."""

    prompt: Optional[str] = None

    async def wait(self) -> None:
        raise NotImplementedError()


class EventStopSignal(StopSignal):
    """Stop signal released programmatically."""

    def __init__(self):
        self._event = locks.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class KeypressStopSignal(StopSignal):
    """Stop signal released by a single keypress on the terminal."""

    prompt = 'Playing video, press any key to stop ...'

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdin

    async def wait(self) -> None:
        if os.name == 'posix' and self.stream.isatty():
            await self._wait_tty()

        else:
            await IOLoop.current().run_in_executor(None, read_keypress, self.stream)

    async def _wait_tty(self) -> None:
        import termios
        import tty

        fd = self.stream.fileno()
        old_attrs = termios.tcgetattr(fd)
        io_loop = IOLoop.current()
        pressed = Future()

        tty.setcbreak(fd)
        io_loop.add_handler(fd, lambda fd, events: consume_keypress(fd, pressed), IOLoop.READ)

        try:
            await pressed

        finally:
            io_loop.remove_handler(fd)
            termios.tcsetattr(fd, termios.TCSADRAIN, old_attrs)
            logging.debug("key pressed, stopping")


def read_keypress(stream: TextIO) -> str:
    """Block until a single character is available on the stream.

    Returns the character, or an empty string at end of input.
    """
    if os.name == 'nt' and stream.isatty():
        import msvcrt

        return msvcrt.getwch()

    return stream.read(1)


def consume_keypress(fd: int, pressed: Future) -> None:
    """Read one byte from a readable descriptor and release the waiter.

    Further bytes of the same input (a paste, an escape sequence) may
    trigger this again before the handler is removed.
    """
    os.read(fd, 1)
    if not pressed.done():
        future_set_result_unless_cancelled(pressed, None)
