import asyncio


class Connection:
	"""One accepted client, plain TCP or already TLS-wrapped by the listener"""
	def __init__(self, reader:asyncio.StreamReader, writer:asyncio.StreamWriter, buffer_size:int = 65536, peer_ip:str = None, peer_port:int = None):
		self.reader = reader
		self.writer = writer
		self.buffer_size = buffer_size
		self.peer_ip = peer_ip #for streams that have no get_extra_info
		self.peer_port = peer_port
		self.closing = False
		self.closed_evt = asyncio.Event()

	async def __aenter__(self):
		return self

	async def __aexit__(self, exc_type, exc, tb):
		await self.close()

	def get_extra_info(self, name, default=None):
		if name == 'peername' and self.peer_ip is not None:
			return (self.peer_ip, self.peer_port)

		if hasattr(self.writer, 'get_extra_info'):
			return self.writer.get_extra_info(name, default)

		return default

	def get_peer_name(self):
		peer = self.get_extra_info('peername')
		if peer is None:
			return '-'
		return '%s:%s' % (peer[0], peer[1])

	async def close(self):
		if self.closing is True:
			return
		self.closing = True
		if self.writer is not None:
			self.writer.close()
		self.closed_evt.set()

	async def write(self, data:bytes):
		self.writer.write(data)
		await self.writer.drain()

	async def read_one(self) -> bytes:
		"""Returns whatever is available (at most buffer_size bytes), b'' on EOF"""
		if self.closing is True:
			return b''
		return await self.reader.read(self.buffer_size)
