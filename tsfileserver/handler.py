import os
import stat
import urllib.parse

import h11

from tsfileserver import logger
from tsfileserver.common.config import ServerConfig
from tsfileserver.common.exceptions import FileServerError, WriteForbidden, \
	ExistingDirectoryConflict, StatFailure, ListFailure, OpenFailure, CreateFailure, WriteFailure
from tsfileserver.common.listing import build_entries, render_listing, list_directory
from tsfileserver.common.pathresolver import resolve_path
from tsfileserver.protocol.httpserver import HTTPServerHandler

# upper bound of file data held in memory by a single download or upload
COPY_BUFFER_SIZE = 1024*1024


def split_target(target:bytes):
	"""Returns the raw (percent-encoded) url path and its decoded form"""
	raw = target.decode('ascii', 'surrogateescape')
	if raw.startswith('/'):
		# origin-form, a leading '//' is part of the path and never an authority
		url_path = raw.partition('?')[0].partition('#')[0]
	else:
		url_path = urllib.parse.urlsplit(raw).path
	url_path = url_path or '/'
	return url_path, urllib.parse.unquote(url_path, errors='surrogateescape')

def write_all(f, data):
	with memoryview(data) as view:
		offset = 0
		while offset < len(view):
			offset += f.write(view[offset:])


class FileServerHandler(HTTPServerHandler):
	"""
	Serves the directory tree of `config.root`.

	GET lists directories and streams files, POST stores the request body
	as a file (only when config.writable is set). Every path is confined
	to the root by resolve_path before the filesystem is touched.
	"""
	def __init__(self, config:ServerConfig):
		super().__init__()
		self.config = config

	async def send_error(self, err:FileServerError):
		logger.debug('%s -> %s %s' % (type(err).__name__, err.status_code, err))
		await self.send_text(err.status_code, str(err))

	def log_request(self, event:h11.Request, url_path:str):
		peer = '-'
		if self._wrapper is not None:
			peer = self._wrapper.stream.get_peer_name()
		logger.info('%s %s %s' % (event.method.decode('ascii'), peer, url_path))

	async def do_GET(self, event:h11.Request):
		url_path, request_path = split_target(event.target)
		self.log_request(event, request_path)

		item, err = resolve_path(self.config.root, request_path)
		if err is not None:
			return await self.send_error(err)

		try:
			info = os.stat(item)
		except OSError as e:
			return await self.send_error(StatFailure(e))

		if stat.S_ISDIR(info.st_mode):
			return await self._serve_directory(item, url_path)
		if not stat.S_ISREG(info.st_mode):
			return await self.send_error(OpenFailure(OSError("not a regular file")))
		await self._serve_file(item, info.st_size)

	async def _serve_directory(self, item:str, url_path:str):
		try:
			names = list_directory(item)
		except OSError as e:
			return await self.send_error(ListFailure(e))

		# links must stay relative to this host, '//x' would be read as a hostname by browsers
		url_path = '/' + url_path.lstrip('/')
		page = render_listing(item, build_entries(url_path, names), self.config.writable)
		await self.send_response(200, page.encode('utf-8', 'replace'), 'text/html; charset=utf-8')

	async def _serve_file(self, item:str, size:int):
		try:
			f = open(item, 'rb')
		except OSError as e:
			return await self.send_error(OpenFailure(e))

		with f:
			headers = self._wrapper.basic_headers()
			headers.append(("Content-Length", str(size).encode("ascii")))
			headers.append(("Content-Type", b"application/octet-stream"))
			await self._wrapper.send(h11.Response(status_code=200, headers=headers))
			# a file that changed size since the stat makes h11 refuse the message, ending the connection
			while True:
				chunk = f.read(COPY_BUFFER_SIZE)
				if not chunk:
					break
				await self._wrapper.send(h11.Data(data=chunk))
			await self._wrapper.send(h11.EndOfMessage())

	async def do_POST(self, event:h11.Request):
		_, request_path = split_target(event.target)
		self.log_request(event, request_path)

		if self.config.writable is False:
			return await self.send_error(WriteForbidden())

		item, err = resolve_path(self.config.root, request_path)
		if err is not None:
			return await self.send_error(err)

		if os.path.isdir(item):
			return await self.send_error(ExistingDirectoryConflict())

		try:
			os.makedirs(os.path.dirname(item), exist_ok=True)
		except OSError as e:
			return await self.send_error(CreateFailure(e, action = 'create parent directory'))

		try:
			f = open(item, 'wb', buffering=0)
		except OSError as e:
			return await self.send_error(CreateFailure(e))

		total = 0
		buffer = bytearray()
		with f:
			while True:
				event = await self._wrapper.next_event()
				if type(event) is h11.EndOfMessage:
					break
				if type(event) is not h11.Data:
					raise ConnectionError('Upload of %s interrupted after %s bytes' % (item, total))
				buffer += event.data
				total += len(event.data)
				if len(buffer) < COPY_BUFFER_SIZE:
					continue
				try:
					write_all(f, buffer)
				except OSError as e:
					return await self.send_error(WriteFailure(e))
				buffer.clear()

			try:
				write_all(f, buffer)
			except OSError as e:
				return await self.send_error(WriteFailure(e))

		logger.debug('Stored %s bytes to %s' % (total, item))
		await self.send_response(200, b'', 'text/plain; charset=utf-8')
