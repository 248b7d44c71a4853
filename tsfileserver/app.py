import os
import asyncio
import logging

from tsfileserver import logger
from tsfileserver.common.config import AppParams, ServerConfig
from tsfileserver.handler import FileServerHandler
from tsfileserver.network.certs import CertStore
from tsfileserver.network.listener import Listener
from tsfileserver.protocol.httpserver import HTTPServer


class FileServerApp:
	"""
	Wires the pieces together: state directory, ServerConfig, optional TLS,
	listener and the HTTP server running FileServerHandler.
	Raises NotADirectory when the root can't be served.
	"""
	def __init__(self, params:AppParams, log_callback = None):
		self.params = params
		self.log_callback = log_callback
		if params.debug is True:
			logger.setLevel(logging.DEBUG)
			if self.log_callback is None:
				self.log_callback = self.log_debug
		self.config = ServerConfig.from_directory(params.root, params.writable)

		if params.state_dir is not None:
			os.makedirs(params.state_dir, mode=0o700, exist_ok=True)

		ssl_ctx = None
		if params.tls is True:
			ssl_ctx = CertStore(params.state_dir).get_ssl_context(params.name)

		self.listener = Listener(params.host, params.port, ssl_ctx = ssl_ctx)
		self.server = HTTPServer(self.get_handler, self.listener, log_callback = self.log_callback)

	async def log_debug(self, msg):
		logger.debug(msg)

	def get_handler(self):
		return FileServerHandler(self.config)

	def get_urls(self):
		# the certificate is issued for the node name, plain http is reached on the bound address
		hostname = self.params.name if self.listener.is_tls() else self.params.host
		urls = []
		for port in self.listener.get_ports():
			urls.append('%s://%s:%s/' % (self.params.get_scheme(), hostname, port))
		return urls

	async def run(self):
		logger.info('Starting file server on %s (writable: %s)' % (self.config.root, self.config.writable))
		try:
			await self.listener.start()
			for url in self.get_urls():
				logger.info('To use it please access: %s' % url)
			await self.server.serve()
		finally:
			await self.close()

	async def close(self):
		await self.server.terminate()


def run_app(params:AppParams, log_callback = None):
	app = FileServerApp(params, log_callback = log_callback)
	try:
		asyncio.run(app.run())
	except KeyboardInterrupt:
		logger.info('Server stopped by user')
