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

import argparse
import asyncio
import logging
import os
import sys

import tornado

import rtsprequest
from rtsprequest import settings
from rtsprequest.client import RTSPClient, RTSPClientError
from rtsprequest.control import KeypressStopSignal, StopSignal
from rtsprequest.session import Session, SessionDriver

EXAMPLE_URL = 'rtsp://192.168.0.2/media/video1'


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_help(sys.stdout)
        self.exit(2, f'\n{self.prog}: error: {message}\n')


def _positive_float(value):
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f'invalid number: {value!r}')

    if number <= 0:
        raise argparse.ArgumentTypeError(f'must be greater than zero: {value!r}')

    return number


def make_arg_parser(prog=None):
    prog = prog or os.path.basename(sys.argv[0]) or 'rtsprequest'

    parser = _ArgumentParser(
        prog=prog,
        description='Issue OPTIONS, DESCRIBE, SETUP, PLAY and TEARDOWN '
                    'requests against an RTSP video server.',
        epilog=f'default transport: {settings.TRANSPORT}\n'
               f'example: {prog} {EXAMPLE_URL}',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument('url', help='url of video server')
    parser.add_argument('transport', nargs='?', default=None,
                        help='specifier for media stream protocol')
    parser.add_argument('--timeout', type=_positive_float, default=None, metavar='SECONDS',
                        help=f'request timeout (default: {settings.REQUEST_TIMEOUT})')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='print debug messages')

    return parser


def configure_logging(level):
    format = '%(asctime)s: [%(levelname)8s] %(message)s'
    logging.basicConfig(stream=sys.stderr, level=level, format=format,
                        datefmt='%Y-%m-%d %H:%M:%S')

    logging.getLogger('tornado').setLevel(max(level, logging.WARNING))


def print_banner(out):
    out.write(f'\nRTSP request V{rtsprequest.VERSION}\n')
    out.write('    Requires tornado V6.0 or greater\n\n')
    out.flush()


async def run(session: Session, client: RTSPClient, stop_signal: StopSignal) -> Session:
    async with client:
        return await SessionDriver(session, client, stop_signal).run()


def main(argv=None):
    parser = make_arg_parser()
    options = parser.parse_args(argv)

    transport = options.transport if options.transport is not None else settings.TRANSPORT
    level = logging.DEBUG if options.verbose else settings.LOG_LEVEL

    configure_logging(level)
    print_banner(sys.stdout)
    logging.info(f'tornado V{tornado.version} loaded')

    session = Session(url=options.url, transport=transport, range=settings.RANGE)

    try:
        client = RTSPClient(options.url, request_timeout=options.timeout)

    except RTSPClientError as e:
        logging.error(f'could not initialize RTSP client: {int(e.code)} ({e.code.name}): {e}')
        return 0

    asyncio.run(run(session, client, KeypressStopSignal()))

    return 0


if __name__ == '__main__':
    sys.exit(main())
