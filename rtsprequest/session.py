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

"""RTSP session driver.

Issues OPTIONS, DESCRIBE, SETUP, PLAY and TEARDOWN in that order against a
single media server. A failing request is reported and the sequence goes
on with the next one; nothing is retried.
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TextIO

from rtsprequest import settings
from rtsprequest.client import RTSPClient, RTSPClientError, RTSPResponse
from rtsprequest.control import KeypressStopSignal, StopSignal
from rtsprequest.protocol import RTSPMethod
from rtsprequest.sdp import open_sdp_output, sdp_filename


class SessionState(Enum):
    """Progress of the request sequence."""
    INIT = "init"
    OPTIONS_SENT = "options_sent"
    DESCRIBED = "described"
    SETUP_DONE = "setup_done"
    PLAYING = "playing"
    TORN_DOWN = "torn_down"
    DONE = "done"


@dataclass
class StepOutcome:
    """Result of a single request of the sequence."""
    method: RTSPMethod
    uri: str
    error: Optional[RTSPClientError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Session:
    """A media session against one base URL."""
    url: str
    transport: str = field(default_factory=lambda: settings.TRANSPORT)
    range: str = field(default_factory=lambda: settings.RANGE)
    state: SessionState = SessionState.INIT
    outcomes: List[StepOutcome] = field(default_factory=list)

    # Transport parameters returned by the server on SETUP
    server_transport: Dict[str, Any] = field(default_factory=dict)

    @property
    def options_uri(self) -> str:
        return self.url

    @property
    def describe_uri(self) -> str:
        return self.url

    @property
    def setup_uri(self) -> str:
        return self.url + '/video'

    @property
    def play_uri(self) -> str:
        return self.url + '/'

    @property
    def teardown_uri(self) -> str:
        return self.play_uri

    @property
    def failures(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if not o.ok]


class SessionDriver:
    """Runs the fixed request sequence of a session over an RTSP client."""

    def __init__(
        self,
        session: Session,
        client: RTSPClient,
        stop_signal: Optional[StopSignal] = None,
        out: Optional[TextIO] = None,
        sdp_dir: str = os.curdir,
    ):
        self.session = session
        self.client = client
        self.stop_signal = stop_signal if stop_signal is not None else KeypressStopSignal()
        self.out = out if out is not None else sys.stdout
        self.sdp_dir = sdp_dir

    async def run(self) -> Session:
        """Issue the whole request sequence.

        The transport is not closed here; its owner releases it.
        """
        session = self.session

        try:
            await self.options(session.options_uri)
            await self.describe(session.describe_uri)
            await self.setup(session.setup_uri, session.transport)
            await self.play(session.play_uri, session.range)
            await self.teardown(session.teardown_uri)

        finally:
            session.state = SessionState.DONE

        if session.failures:
            logging.warning(
                "session finished with failed requests: %s",
                ', '.join(o.method.name for o in session.failures),
            )

        else:
            logging.debug("session finished")

        return session

    async def options(self, uri: str) -> bool:
        self._progress(f"RTSP: OPTIONS {uri}")
        ok = await self._perform(RTSPMethod.OPTIONS, uri) is not None
        self.session.state = SessionState.OPTIONS_SENT

        return ok

    async def describe(self, uri: str) -> bool:
        """Request the session description and store it in the SDP file."""
        self._progress(f"RTSP: DESCRIBE {uri}")
        path = os.path.join(self.sdp_dir, sdp_filename(uri))

        default_target = self.client.body_writer

        with open_sdp_output(path, fallback=default_target) as target:
            self.client.body_writer = target

            try:
                ok = await self._perform(RTSPMethod.DESCRIBE, uri) is not None

            finally:
                self.client.body_writer = default_target

        self.session.state = SessionState.DESCRIBED

        return ok

    async def setup(self, uri: str, transport: str) -> bool:
        self._progress(f"RTSP: SETUP {uri}")
        self._progress(f"      TRANSPORT {transport}", blank=False)
        response = await self._perform(RTSPMethod.SETUP, uri, {'Transport': transport})
        if response is not None:
            self.session.server_transport = response.transport
            logging.debug(f"server transport: {self.session.server_transport}")

        self.session.state = SessionState.SETUP_DONE

        return response is not None

    async def play(self, uri: str, range_: str) -> bool:
        """Start playing and wait for the stop signal."""
        self._progress(f"RTSP: PLAY {uri}")
        ok = await self._perform(RTSPMethod.PLAY, uri, {'Range': range_}) is not None
        self.session.state = SessionState.PLAYING

        if self.stop_signal.prompt:
            self.out.write(self.stop_signal.prompt)
            self.out.flush()

        await self.stop_signal.wait()
        self.out.write('\n')

        return ok

    async def teardown(self, uri: str) -> bool:
        self._progress(f"RTSP: TEARDOWN {uri}")
        ok = await self._perform(RTSPMethod.TEARDOWN, uri) is not None
        self.session.state = SessionState.TORN_DOWN

        return ok

    async def _perform(
        self,
        method: RTSPMethod,
        uri: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[RTSPResponse]:
        try:
            response = await self.client.request(method, uri, headers)

        except RTSPClientError as e:
            logging.error(f"RTSP {method.name} failed: {int(e.code)} ({e.code.name}): {e}")
            self.session.outcomes.append(StepOutcome(method, uri, e))

            return None

        logging.debug(f"RTSP {method.name} response: {response.status_code} {response.reason}")
        self.session.outcomes.append(StepOutcome(method, uri))

        return response

    def _progress(self, line: str, blank: bool = True) -> None:
        if blank:
            self.out.write('\n')

        self.out.write(line + '\n')
        self.out.flush()
