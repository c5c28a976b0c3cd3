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

"""Storage of the session description returned by DESCRIBE."""

import contextlib
import logging
import os
from typing import BinaryIO, Iterator

from rtsprequest import settings


def sdp_filename(url: str) -> str:
    """Derive the SDP file name from the last path segment of a URL.

    ``rtsp://host/media/video1`` gives ``video1.sdp``; a URL ending with a
    slash (or containing none) gives the default name.
    """
    if '/' not in url:
        return settings.SDP_DEFAULT_NAME

    segment = url.rsplit('/', 1)[1]
    if not segment:
        return settings.SDP_DEFAULT_NAME

    return segment + settings.SDP_SUFFIX


@contextlib.contextmanager
def open_sdp_output(path: str, fallback: BinaryIO) -> Iterator[BinaryIO]:
    """Open the SDP file for binary writing, falling back to another stream.

    The file, when opened, is always closed on exit; the fallback stream
    is left open.
    """
    try:
        f = open(path, 'wb')

    except OSError as e:
        logging.error(f"could not open '{path}' for writing: {e}")
        yield fallback
        return

    logging.info(f"writing SDP to '{os.path.abspath(path)}'")

    try:
        yield f

    finally:
        f.close()
