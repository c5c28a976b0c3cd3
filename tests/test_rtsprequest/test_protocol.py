# Copyright (c) 2025 rtsprequest contributors
# This file is part of rtsprequest.

"""Tests for RTSP protocol utilities and SDP storage."""

import io
import os
import shutil
import tempfile
import unittest

from rtsprequest.protocol import (
    get_status_phrase,
    is_success,
    parse_session_header,
    parse_status_line,
    parse_transport_header,
)
from rtsprequest.sdp import open_sdp_output, sdp_filename


class TestRTSPProtocol(unittest.TestCase):
    """Tests for RTSP protocol utilities."""

    def test_parse_transport_header(self):
        """Test parsing Transport header."""
        # UDP transport
        transport = "RTP/AVP;unicast;client_port=1234-1235;server_port=6970-6971"
        params = parse_transport_header(transport)

        self.assertEqual(params['protocol'], 'RTP/AVP')
        self.assertTrue(params.get('unicast'))
        self.assertEqual(params['client_port'], '1234-1235')
        self.assertEqual(params['server_port'], '6970-6971')

        # TCP interleaved transport
        transport = "RTP/AVP/TCP;unicast;interleaved=0-1"
        params = parse_transport_header(transport)

        self.assertEqual(params['protocol'], 'RTP/AVP/TCP')
        self.assertEqual(params['interleaved'], '0-1')

    def test_parse_status_line(self):
        """Test parsing status lines."""
        self.assertEqual(parse_status_line('RTSP/1.0 200 OK'), ('RTSP/1.0', 200, 'OK'))
        self.assertEqual(
            parse_status_line('RTSP/1.0 454 Session Not Found\r\n'),
            ('RTSP/1.0', 454, 'Session Not Found'),
        )

        # Missing reason phrase
        self.assertEqual(parse_status_line('RTSP/1.0 461'), ('RTSP/1.0', 461, 'Unsupported Transport'))

        self.assertIsNone(parse_status_line('HTTP/1.1 200 OK'))
        self.assertIsNone(parse_status_line('RTSP/1.0 abc OK'))
        self.assertIsNone(parse_status_line(''))

    def test_parse_session_header(self):
        """Test extracting the session id."""
        self.assertEqual(parse_session_header('12345678'), '12345678')
        self.assertEqual(parse_session_header('12345678;timeout=60'), '12345678')
        self.assertEqual(parse_session_header(' ABCDEF ; timeout=30'), 'ABCDEF')

    def test_status_phrases(self):
        """Test status code phrases."""
        self.assertEqual(get_status_phrase(200), 'OK')
        self.assertEqual(get_status_phrase(404), 'Not Found')
        self.assertEqual(get_status_phrase(454), 'Session Not Found')
        self.assertEqual(get_status_phrase(461), 'Unsupported Transport')
        self.assertEqual(get_status_phrase(999), 'Unknown')

    def test_is_success(self):
        self.assertTrue(is_success(200))
        self.assertTrue(is_success(302))
        self.assertFalse(is_success(401))
        self.assertFalse(is_success(551))


class TestSDPStorage(unittest.TestCase):
    """Tests for SDP file naming and opening."""

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_filename_from_last_segment(self):
        self.assertEqual(sdp_filename('rtsp://host/media/video1'), 'video1.sdp')
        self.assertEqual(sdp_filename('rtsp://host/stream'), 'stream.sdp')

    def test_default_filename(self):
        """Test URLs without a last path segment."""
        self.assertEqual(sdp_filename('rtsp://host/'), 'video.sdp')
        self.assertEqual(sdp_filename('rtsp://host/media/'), 'video.sdp')
        self.assertEqual(sdp_filename('camera'), 'video.sdp')

    def test_open_closes_file(self):
        """Test that the opened file is closed on exit."""
        path = os.path.join(self.tmp_dir, 'video1.sdp')
        fallback = io.BytesIO()

        with open_sdp_output(path, fallback) as f:
            self.assertIsNot(f, fallback)
            f.write(b'v=0\r\n')

        self.assertTrue(f.closed)
        with open(path, 'rb') as f:
            self.assertEqual(f.read(), b'v=0\r\n')

    def test_open_closes_file_on_error(self):
        """Test that the file is closed when the body raises."""
        path = os.path.join(self.tmp_dir, 'video1.sdp')

        with self.assertRaises(RuntimeError):
            with open_sdp_output(path, io.BytesIO()) as f:
                raise RuntimeError('boom')

        self.assertTrue(f.closed)

    def test_open_falls_back(self):
        """Test that an unwritable path falls back to the given stream."""
        path = os.path.join(self.tmp_dir, 'missing', 'video1.sdp')
        fallback = io.BytesIO()

        with open_sdp_output(path, fallback) as f:
            self.assertIs(f, fallback)
            f.write(b'v=0\r\n')

        self.assertFalse(fallback.closed)
        self.assertEqual(fallback.getvalue(), b'v=0\r\n')


if __name__ == '__main__':
    unittest.main()
