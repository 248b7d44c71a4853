import ssl
import asyncio
from typing import List

from tsfileserver import logger
from tsfileserver.network.connection import Connection


class Listener:
	"""
	Accepts TCP (optionally TLS) clients and hands them out as Connection objects.
	Whatever sits in front of it (overlay network, reverse proxy) is responsible
	for deciding who may connect at all.
	"""
	def __init__(self, host:str, port:int, ssl_ctx:ssl.SSLContext = None, buffer_size:int = 65536):
		self.host = host
		self.port = port
		self.ssl_ctx = ssl_ctx
		self.buffer_size = buffer_size
		self.server:asyncio.AbstractServer = None
		self.connection_queue = asyncio.Queue()

	def is_tls(self):
		return self.ssl_ctx is not None

	async def __handle_connection(self, reader, writer):
		connection = Connection(reader, writer, buffer_size = self.buffer_size)
		await self.connection_queue.put(connection)

	async def start(self):
		if self.server is not None:
			return self.server
		self.server = await asyncio.start_server(
			self.__handle_connection,
			self.host,
			self.port,
			ssl = self.ssl_ctx,
		)
		for port in self.get_ports():
			logger.debug('Listening on %s:%s (tls: %s)' % (self.host, port, self.is_tls()))
		return self.server

	def get_ports(self) -> List[int]:
		"""The ports actually bound, useful when the listener was created with port 0"""
		if self.server is None:
			return []
		ports = []
		for sock in self.server.sockets:
			port = sock.getsockname()[1]
			if port not in ports:
				ports.append(port)
		return ports

	async def serve(self):
		await self.start()
		try:
			while self.server.is_serving():
				connection = await self.connection_queue.get()
				yield connection
		finally:
			await self.close()

	async def close(self):
		if self.server is None:
			return
		self.server.close()
		while not self.connection_queue.empty():
			connection = self.connection_queue.get_nowait()
			await connection.close()
