import os
from typing import NamedTuple

from tsfileserver.common.exceptions import NotADirectory


class ServerConfig(NamedTuple):
	"""Read-only settings shared by every request handler."""
	root: str
	writable: bool = False

	@staticmethod
	def from_directory(root:str, writable:bool = False) -> 'ServerConfig':
		"""Builds the config for an existing directory, raises NotADirectory otherwise"""
		root = os.path.abspath(root)
		try:
			if not os.path.isdir(root):
				# stat once more to surface the real reason (missing, no permission...)
				os.stat(root)
				raise NotADirectory(root)
		except OSError as e:
			raise NotADirectory(root, e) from e
		return ServerConfig(root, bool(writable))


class AppParams:
	def __init__(self, root:str = '.', state_dir:str = None, name:str = 'ts-fileserver', host:str = '127.0.0.1', port:int = 8080, writable:bool = False, tls:bool = False, debug:bool = False):
		self.root = root
		self.state_dir = state_dir
		self.name = name or 'ts-fileserver'
		self.host = host
		self.port = port
		self.writable = writable
		self.tls = tls
		self.debug = debug

	@staticmethod
	def from_args(args) -> 'AppParams':
		return AppParams(
			root = args.root,
			state_dir = args.state_dir,
			name = args.name,
			host = args.host,
			port = args.port,
			writable = args.writable,
			tls = args.tls,
			debug = args.debug,
		)

	def get_scheme(self):
		return 'https' if self.tls is True else 'http'

	def __repr__(self):
		return str(self.__dict__)

	def __str__(self):
		return repr(self)
