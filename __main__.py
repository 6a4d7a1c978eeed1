"""
Entry point for RelayChat application.
This module provides a command-line interface to start either the server or a client.
"""

import argparse

from RelayChat.config import Config
from RelayChat.start import client, server


def parse():
    parser = argparse.ArgumentParser(prog='RelayChat', description='RelayChat starter')
    subparsers = parser.add_subparsers(dest='command', required=True, help='Available commands')

    server_parser = subparsers.add_parser('server', help='Startup SERVER')
    server_parser.add_argument('--host', default=None, help='Bind address (default: HOST or 0.0.0.0)')
    server_parser.add_argument('--port', type=int, default=None, help='SERVER port (default: PORT or 3000)')

    client_parser = subparsers.add_parser('client', help='Startup CLIENT')
    client_parser.add_argument('--host', default='localhost', help='Server address (default: localhost)')
    client_parser.add_argument('--port', type=int, default=Config.DEFAULT_PORT,
                               help=f'Server port (default: {Config.DEFAULT_PORT})')
    client_parser.add_argument('--cookie-name', default=Config.DEFAULT_COOKIE_NAME,
                               help=f'Session cookie name (default: {Config.DEFAULT_COOKIE_NAME})')

    return parser.parse_args()


def main():
    args = parse()

    if args.command == 'server':
        server.server(port=args.port, host=args.host)
    elif args.command == 'client':
        client.client(host=args.host, port=args.port, cookie_name=args.cookie_name)
    else:
        raise Exception('Unknown command')


if __name__ == '__main__':
    main()
