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

import logging

import rtsprequest

# media stream protocol requested with SETUP
TRANSPORT = 'RTP/AVP;unicast;client_port=1234-1235'

# playback range requested with PLAY, sent verbatim
RANGE = '0.000-'

# name of the SDP file when the url has no last path segment
SDP_DEFAULT_NAME = 'video.sdp'
SDP_SUFFIX = '.sdp'

# timeout in seconds for establishing the connection
CONNECT_TIMEOUT = 10

# timeout in seconds for a single request/response round trip
REQUEST_TIMEOUT = 30

USER_AGENT = f'rtsprequest/{rtsprequest.VERSION}'

LOG_LEVEL = logging.INFO
