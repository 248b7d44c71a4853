import asyncio

import h11
import pytest

from tsfileserver.common.config import ServerConfig
from tsfileserver.handler import FileServerHandler
from tsfileserver.protocol.httpserver import HTTPConnectionWrapper


class MemoryStream:
	"""Stands in for a Connection, replays the client bytes and records the answer"""
	def __init__(self, data:bytes, chunk_size:int = 65536):
		self.incoming = [data[i:i+chunk_size] for i in range(0, len(data), chunk_size)]
		self.outgoing = bytearray()
		self.closed = False

	async def read_one(self):
		if len(self.incoming) == 0:
			return b''
		return self.incoming.pop(0)

	async def write(self, data):
		self.outgoing += data

	async def close(self):
		self.closed = True

	def get_extra_info(self, name, default=None):
		if name == 'peername':
			return ('127.0.0.1', 4242)
		return default

	def get_peer_name(self):
		return '127.0.0.1:4242'


class Reply:
	def __init__(self, status, headers, body):
		self.status = status
		self.headers = headers
		self.body = body

	@property
	def text(self):
		return self.body.decode('utf-8')


def build_request(method:str, path:str, body:bytes = b'', extra_headers = None):
	client = h11.Connection(h11.CLIENT)
	headers = [('Host', 'localhost')]
	if method == 'POST' or len(body) > 0:
		headers.append(('Content-Length', str(len(body))))
	if extra_headers is not None:
		headers.extend(extra_headers)
	raw = client.send(h11.Request(method=method, target=path, headers=headers))
	if len(body) > 0:
		raw += client.send(h11.Data(data=body))
	raw += client.send(h11.EndOfMessage())
	return client, raw

def read_reply(client:h11.Connection, data:bytes) -> Reply:
	client.receive_data(data)
	status = None
	headers = {}
	body = bytearray()
	while True:
		event = client.next_event()
		if type(event) is h11.Response:
			status = event.status_code
			headers = {k.decode('ascii').lower(): v.decode('latin-1') for k, v in event.headers}
		elif type(event) is h11.Data:
			body += event.data
		elif type(event) is h11.EndOfMessage:
			break
		else:
			raise AssertionError('unexpected event %r' % (event,))
	return Reply(status, headers, bytes(body))

def exchange(config:ServerConfig, method:str, path:str, body:bytes = b'', extra_headers = None) -> Reply:
	"""Runs one request through FileServerHandler without any socket"""
	client, raw = build_request(method, path, body, extra_headers)
	stream = MemoryStream(raw)

	async def run():
		wrapper = HTTPConnectionWrapper(0, stream)
		event = await wrapper.next_event()
		assert type(event) is h11.Request
		await FileServerHandler(config).process_request(wrapper, event)

	asyncio.run(run())
	return read_reply(client, bytes(stream.outgoing))


@pytest.fixture
def root(tmp_path):
	base = tmp_path / 'srv'
	base.mkdir()
	(base / 'hello.txt').write_bytes(b'hello world\n')
	(base / 'docs').mkdir()
	(base / 'docs' / 'a.md').write_text('# a\n')
	(base / 'docs' / 'b.md').write_text('# b\n')
	(base / 'docs' / 'nested').mkdir()
	(base / 'docs' / 'nested' / 'deep.txt').write_text('deep\n')
	(tmp_path / 'secret.txt').write_text('outside the root\n')
	return base

@pytest.fixture
def ro_config(root):
	return ServerConfig.from_directory(str(root))

@pytest.fixture
def rw_config(root):
	return ServerConfig.from_directory(str(root), writable=True)
