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

"""RTSP Protocol constants and utilities."""

from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

# RTSP Version
RTSP_VERSION = "RTSP/1.0"

# Default ports
DEFAULT_RTSP_PORT = 554

SDP_MIME_TYPE = "application/sdp"


class RTSPMethod(IntEnum):
    """RTSP request methods issued by the client."""
    OPTIONS = 1
    DESCRIBE = 2
    SETUP = 3
    PLAY = 4
    TEARDOWN = 5


# Methods that are meaningless outside of an established session
SESSION_METHODS = (
    RTSPMethod.PLAY,
    RTSPMethod.TEARDOWN,
)


# Status code reason phrases
STATUS_PHRASES: Dict[int, str] = {
    200: "OK",
    201: "Created",
    250: "Low on Storage Space",
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Moved Temporarily",
    303: "See Other",
    305: "Use Proxy",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    408: "Request Timeout",
    451: "Parameter Not Understood",
    453: "Not Enough Bandwidth",
    454: "Session Not Found",
    455: "Method Not Valid in This State",
    456: "Header Field Not Valid for Resource",
    457: "Invalid Range",
    459: "Aggregate Operation Not Allowed",
    460: "Only Aggregate Operation Allowed",
    461: "Unsupported Transport",
    462: "Destination Unreachable",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "RTSP Version Not Supported",
    551: "Option not supported",
}


def get_status_phrase(code: int) -> str:
    """Get the reason phrase for an RTSP status code."""
    return STATUS_PHRASES.get(code, "Unknown")


def is_success(code: int) -> bool:
    return code < 400


def parse_status_line(line: str) -> Optional[Tuple[str, int, str]]:
    """Parse an RTSP status line.

    Args:
        line: The first line of a response, e.g. ``RTSP/1.0 200 OK``

    Returns:
        Tuple of (version, status code, reason) or None if malformed
    """
    parts = line.strip().split(' ', 2)
    if len(parts) < 2 or not parts[0].startswith('RTSP/'):
        return None

    try:
        code = int(parts[1])
    except ValueError:
        return None

    reason = parts[2] if len(parts) > 2 else get_status_phrase(code)
    return parts[0], code, reason


def parse_session_header(session: str) -> str:
    """Extract the session identifier from a Session header.

    The header may carry parameters, e.g. ``12345678;timeout=60``.
    """
    return session.split(';', 1)[0].strip()


def parse_transport_header(transport: str) -> Dict[str, Any]:
    """Parse an RTSP Transport header.

    Args:
        transport: The Transport header value

    Returns:
        Dictionary of transport parameters
    """
    params = {}
    parts = transport.split(';')

    for part in parts:
        part = part.strip()
        if not part:
            continue
        if '=' in part:
            key, value = part.split('=', 1)
            params[key.strip()] = value.strip()
        else:
            # Protocol specification like RTP/AVP or RTP/AVP/TCP
            if '/' in part:
                params['protocol'] = part
            else:
                params[part] = True

    return params
