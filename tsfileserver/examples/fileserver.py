#!/usr/bin/env python3
"""
Directory sharing server

Exposes one directory over HTTP(S). Directories are rendered as HTML
listings, files are downloaded as raw bytes and, when started with -w,
files can be uploaded with a POST to the path they should be stored at.

Usage:
    ts-fileserver -r ./shared -w --host 0.0.0.0 --port 8080
    curl --data-binary @notes.txt http://127.0.0.1:8080/docs/notes.txt
"""

import sys
import logging
import argparse

from tsfileserver import logger
from tsfileserver._version import __version__
from tsfileserver.app import run_app
from tsfileserver.common.config import AppParams
from tsfileserver.common.exceptions import NotADirectory


def get_parser():
	parser = argparse.ArgumentParser(
		description='Shares a single directory over HTTP, optionally writable',
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog='''
Examples:
  %(prog)s                                   # Serve the current directory read-only on 127.0.0.1:8080
  %(prog)s -r /srv/files -w                  # Allow uploads
  %(prog)s -r /srv/files --tls -n mynode     # HTTPS with a self-signed certificate for "mynode"
''')
	parser.add_argument('-r', '--root', default='.', help='Which folder to expose')
	parser.add_argument('-s', '--state-dir', default=None, help='Where to store state (TLS certificate and key)')
	parser.add_argument('-n', '--name', default='ts-fileserver', help='Hostname of this node, used for the TLS certificate')
	parser.add_argument('-w', '--writable', action='store_true', help='Are users able to write files?')
	parser.add_argument('-H', '--host', default='127.0.0.1', help='Address to bind to (default: 127.0.0.1)')
	parser.add_argument('-p', '--port', type=int, default=8080, help='Port to bind to (default: 8080)')
	parser.add_argument('-t', '--tls', action='store_true', help='Serve HTTPS with a self-signed certificate')
	parser.add_argument('-d', '--debug', action='store_true', help='Enable debug logging')
	parser.add_argument('-v', '--version', action='version', version='ts-fileserver %s' % __version__)
	return parser

def main(argv = None):
	parser = get_parser()
	args = parser.parse_args(argv)

	if args.port < 0 or args.port > 65535:
		parser.error('port must be between 0 and 65535, got %s' % args.port)

	params = AppParams.from_args(args)
	if params.debug is True:
		logger.setLevel(logging.DEBUG)
	logger.debug('args: %s' % params)

	try:
		run_app(params)
	except NotADirectory as e:
		logger.error('failed to initialize application: %s' % e)
		sys.exit(1)
	except Exception:
		logger.exception('failed to run app')
		sys.exit(1)

if __name__ == '__main__':
	main()
