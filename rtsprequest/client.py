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

"""RTSP client transport.

A single RTSP connection bound to one base URL. The client keeps track of
the request sequence number and the session identifier handed out by the
server, writes response headers to a text stream and bodies, untouched, to a
binary stream, and reports every failure as an :class:`RTSPClientError`.
"""

import asyncio
import logging
import socket
import struct
import sys
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, BinaryIO, Dict, Optional, TextIO
from urllib.parse import urlparse

from tornado.httputil import HTTPHeaders
from tornado.iostream import IOStream, StreamClosedError, UnsatisfiableReadError
from tornado.tcpclient import TCPClient

from rtsprequest import settings
from rtsprequest.protocol import (
    DEFAULT_RTSP_PORT, RTSP_VERSION, SDP_MIME_TYPE, SESSION_METHODS,
    RTSPMethod, get_status_phrase, is_success, parse_session_header,
    parse_status_line, parse_transport_header,
)

MAX_HEADER_SIZE = 65536

# marks an interleaved binary frame on the control connection
INTERLEAVED_MAGIC = b'$'


class ErrorCode(IntEnum):
    """Failure codes reported by the RTSP client."""
    OK = 0
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    RTSP_PARSE_ERROR = 8
    RTSP_STATUS_ERROR = 22
    OPERATION_TIMEDOUT = 28
    BAD_FUNCTION_ARGUMENT = 43
    SEND_ERROR = 55
    RECV_ERROR = 56
    RTSP_CSEQ_ERROR = 85
    RTSP_SESSION_ERROR = 86


class RTSPClientError(Exception):
    """An RTSP request could not be completed."""

    def __init__(self, code: ErrorCode, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status = status


@dataclass
class RTSPRequest:
    """RTSP request builder."""
    method: RTSPMethod
    uri: str
    headers: Dict[str, str] = field(default_factory=dict)

    def to_bytes(self) -> bytes:
        """Serialize request to bytes."""
        lines = [f"{self.method.name} {self.uri} {RTSP_VERSION}"]

        for key, value in self.headers.items():
            lines.append(f"{key}: {value}")

        lines.append("")
        lines.append("")

        return "\r\n".join(lines).encode('utf-8')


@dataclass
class RTSPResponse:
    """Parsed RTSP response."""
    version: str
    status_code: int
    reason: str
    headers: HTTPHeaders = field(default_factory=HTTPHeaders)
    body: bytes = b''
    raw_headers: bytes = b''

    @classmethod
    def parse(cls, header_data: bytes) -> Optional['RTSPResponse']:
        """Parse the status line and headers of an RTSP response.

        Args:
            header_data: Raw response data up to and including the blank line

        Returns:
            Parsed response without body or None if invalid
        """
        text = header_data.decode('utf-8', errors='replace').lstrip('\r\n')
        status_line, _, header_block = text.partition('\r\n')

        status = parse_status_line(status_line)
        if status is None:
            return None

        try:
            headers = HTTPHeaders.parse(header_block)
        except Exception as e:
            logging.debug(f"Failed to parse RTSP response headers: {e}")
            return None

        version, code, reason = status
        return cls(
            version=version,
            status_code=code,
            reason=reason,
            headers=headers,
            raw_headers=header_data,
        )

    @property
    def content_length(self) -> int:
        try:
            return max(0, int(self.headers.get('Content-Length', 0)))
        except ValueError:
            return 0

    @property
    def cseq(self) -> Optional[int]:
        try:
            return int(self.headers.get('CSeq', ''))
        except ValueError:
            return None

    @property
    def session_id(self) -> Optional[str]:
        session = self.headers.get('Session')
        if not session:
            return None
        return parse_session_header(session) or None

    @property
    def transport(self) -> Dict[str, Any]:
        """Transport parameters the server settled on, empty if none."""
        transport = self.headers.get('Transport')
        if not transport:
            return {}
        return parse_transport_header(transport)


class RTSPClient:
    """RTSP connection to a single media server.

    The connection is opened on the first request and reopened if the
    server closed it in between. Requests are strictly sequential.
    """

    def __init__(
        self,
        url: str,
        header_writer: Optional[TextIO] = None,
        body_writer: Optional[BinaryIO] = None,
        connect_timeout: Optional[float] = None,
        request_timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        parsed = urlparse(url)
        if parsed.scheme.lower() != 'rtsp' or not parsed.hostname:
            raise RTSPClientError(ErrorCode.URL_MALFORMAT, f"invalid RTSP url '{url}'")

        try:
            port = parsed.port
        except ValueError:
            raise RTSPClientError(ErrorCode.URL_MALFORMAT, f"invalid port in RTSP url '{url}'")

        self.url = url
        self.host = parsed.hostname
        self.port = port or DEFAULT_RTSP_PORT

        self.header_writer = header_writer if header_writer is not None else sys.stdout
        self.body_writer = body_writer if body_writer is not None else sys.stdout.buffer

        self.connect_timeout = connect_timeout or settings.CONNECT_TIMEOUT
        self.request_timeout = request_timeout or settings.REQUEST_TIMEOUT
        self.user_agent = user_agent or settings.USER_AGENT

        self.cseq = 0
        self.session_id: Optional[str] = None

        self._tcp_client = TCPClient()
        self._stream: Optional[IOStream] = None

    async def __aenter__(self) -> 'RTSPClient':
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._stream is not None and not self._stream.closed()

    def close(self) -> None:
        """Close the connection and release the underlying resolver."""
        self._close_stream()
        self._tcp_client.close()

    async def request(
        self,
        method: RTSPMethod,
        uri: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> RTSPResponse:
        """Send a request and wait for its response.

        Args:
            method: RTSP method
            uri: Request URI
            headers: Additional request headers (Transport, Range...)

        Returns:
            The response, its body already written to ``body_writer``
        """
        if method in SESSION_METHODS and not self.session_id:
            raise RTSPClientError(
                ErrorCode.BAD_FUNCTION_ARGUMENT,
                f"refusing to issue an RTSP {method.name} request without a session id",
            )

        self.cseq += 1
        request = RTSPRequest(method=method, uri=uri, headers=self._request_headers(method, headers))

        try:
            stream = await self._connect()
            logging.debug(f"sending RTSP {method.name} {uri} (CSeq {self.cseq})")

            try:
                await asyncio.wait_for(stream.write(request.to_bytes()), timeout=self.request_timeout)
            except StreamClosedError as e:
                self._close_stream()
                raise RTSPClientError(ErrorCode.SEND_ERROR, f"failed sending {method.name} request: {e}")

            response = await asyncio.wait_for(self._read_response(stream), timeout=self.request_timeout)

        except asyncio.TimeoutError:
            self._close_stream()
            raise RTSPClientError(
                ErrorCode.OPERATION_TIMEDOUT,
                f"{method.name} request timed out after {self.request_timeout} seconds",
            )

        finally:
            if method == RTSPMethod.TEARDOWN:
                self.session_id = None

        self._write_response(response)

        if response.headers.get('Connection', '').lower() == 'close':
            logging.debug("server requested to close the connection")
            self._close_stream()

        self._check_response(method, response)

        return response

    def _request_headers(self, method: RTSPMethod, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = {
            'CSeq': str(self.cseq),
            'User-Agent': self.user_agent,
        }

        if self.session_id and method != RTSPMethod.OPTIONS:
            headers['Session'] = self.session_id

        if method == RTSPMethod.DESCRIBE:
            headers['Accept'] = SDP_MIME_TYPE

        headers.update(extra or {})

        return headers

    async def _connect(self) -> IOStream:
        if self.connected:
            return self._stream

        logging.debug(f"connecting to {self.host}:{self.port}")

        try:
            self._stream = await asyncio.wait_for(
                self._tcp_client.connect(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError:
            raise RTSPClientError(
                ErrorCode.OPERATION_TIMEDOUT,
                f"connection to {self.host}:{self.port} timed out after {self.connect_timeout} seconds",
            )
        except socket.gaierror as e:
            raise RTSPClientError(ErrorCode.COULDNT_RESOLVE_HOST, f"could not resolve host {self.host}: {e}")
        except (OSError, StreamClosedError) as e:
            raise RTSPClientError(ErrorCode.COULDNT_CONNECT, f"could not connect to {self.host}:{self.port}: {e}")

        return self._stream

    def _close_stream(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    async def _read_response(self, stream: IOStream) -> RTSPResponse:
        try:
            first = await stream.read_bytes(1)

            # skip interleaved RTP/RTCP data preceding the response
            while first == INTERLEAVED_MAGIC:
                header = await stream.read_bytes(3)
                channel = header[0]
                length = struct.unpack('!H', header[1:3])[0]
                if length:
                    await stream.read_bytes(length)
                logging.debug(f"skipped {length} bytes of interleaved data on channel {channel}")
                first = await stream.read_bytes(1)

            header_data = first + await stream.read_until(b'\r\n\r\n', max_bytes=MAX_HEADER_SIZE)

            response = RTSPResponse.parse(header_data)
            if response is None:
                self._close_stream()
                raise RTSPClientError(ErrorCode.RTSP_PARSE_ERROR, "malformed RTSP response")

            if response.content_length:
                response.body = await stream.read_bytes(response.content_length)

        except UnsatisfiableReadError:
            self._close_stream()
            raise RTSPClientError(ErrorCode.RTSP_PARSE_ERROR, "RTSP response headers too large")

        except StreamClosedError as e:
            self._close_stream()
            raise RTSPClientError(ErrorCode.RECV_ERROR, f"connection closed while reading response: {e}")

        return response

    def _write_response(self, response: RTSPResponse) -> None:
        self.header_writer.write(response.raw_headers.decode('utf-8', errors='backslashreplace'))
        self.header_writer.flush()

        if response.body:
            self.body_writer.write(response.body)
            self.body_writer.flush()

    def _check_response(self, method: RTSPMethod, response: RTSPResponse) -> None:
        if response.cseq != self.cseq:
            raise RTSPClientError(
                ErrorCode.RTSP_CSEQ_ERROR,
                f"the CSeq of this request {self.cseq} did not match the response {response.cseq}",
            )

        session_id = response.session_id
        if session_id and method != RTSPMethod.TEARDOWN:
            if self.session_id is None:
                self.session_id = session_id
                logging.debug(f"got RTSP session id {session_id}")

            elif self.session_id != session_id:
                raise RTSPClientError(
                    ErrorCode.RTSP_SESSION_ERROR,
                    f"the session id of this request {self.session_id} did not match the response {session_id}",
                )

        if not is_success(response.status_code):
            raise RTSPClientError(
                ErrorCode.RTSP_STATUS_ERROR,
                f"server replied {response.status_code} {response.reason or get_status_phrase(response.status_code)}",
                status=response.status_code,
            )
