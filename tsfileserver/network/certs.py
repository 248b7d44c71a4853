import os
import re
import ssl
import uuid
import datetime
import tempfile
import ipaddress

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

from tsfileserver import logger


def generate_selfsigned_cert(hostname:str, key_exp:int = 65537, key_size:int = 2048, valid_days:int = 365):
	"""Returns (cert_pem, key_pem, err) for a certificate valid for `hostname`"""
	try:
		logger.debug('Generating self-signed certificate for %s' % hostname)
		one_day = datetime.timedelta(1, 0, 0)
		now = datetime.datetime.now(datetime.timezone.utc)
		private_key = rsa.generate_private_key(
			public_exponent=key_exp,
			key_size=key_size,
		)
		try:
			san = x509.IPAddress(ipaddress.ip_address(hostname))
		except ValueError:
			san = x509.DNSName(hostname)

		name = x509.Name([
			x509.NameAttribute(NameOID.COMMON_NAME, hostname),
		])
		builder = x509.CertificateBuilder()
		builder = builder.subject_name(name)
		builder = builder.issuer_name(name)
		builder = builder.not_valid_before(now - one_day)
		builder = builder.not_valid_after(now + datetime.timedelta(valid_days, 0, 0))
		builder = builder.serial_number(int(uuid.uuid4()))
		builder = builder.public_key(private_key.public_key())
		builder = builder.add_extension(
			x509.SubjectAlternativeName([san]), critical=False,
		)
		builder = builder.add_extension(
			x509.BasicConstraints(ca=False, path_length=None), critical=True,
		)
		certificate = builder.sign(private_key=private_key, algorithm=hashes.SHA256())

		cert_pem = certificate.public_bytes(
			encoding=serialization.Encoding.PEM,
		)
		key_pem = private_key.private_bytes(
			encoding=serialization.Encoding.PEM,
			format=serialization.PrivateFormat.TraditionalOpenSSL,
			encryption_algorithm=serialization.NoEncryption()
		)
		return cert_pem, key_pem, None
	except Exception as e:
		logger.exception('generate_selfsigned_cert')
		return None, None, e


class CertStore:
	"""Keeps one self-signed certificate per hostname in `cache_dir`"""
	def __init__(self, cache_dir:str = None):
		self.cache_dir = cache_dir
		self.setup()

	def setup(self):
		if self.cache_dir is None:
			self.cache_dir = os.path.join(tempfile.gettempdir(), 'ts-fileserver')
		os.makedirs(self.cache_dir, mode=0o700, exist_ok=True)

	def get_paths(self, hostname:str):
		bname = re.sub(r'[^\w\-.]', '_', hostname)
		return os.path.join(self.cache_dir, '%s_cert.pem' % bname), os.path.join(self.cache_dir, '%s_key.pem' % bname)

	def load_from_cache(self, hostname:str):
		certfile, keyfile = self.get_paths(hostname)
		if not os.path.isfile(certfile) or not os.path.isfile(keyfile):
			return None, None
		with open(certfile, 'rb') as f:
			cert = x509.load_pem_x509_certificate(f.read())
		if cert.not_valid_after_utc <= datetime.datetime.now(datetime.timezone.utc):
			logger.info('Cached certificate for %s expired' % hostname)
			return None, None
		return certfile, keyfile

	def store_to_cache(self, hostname:str, cert_pem:bytes, key_pem:bytes):
		certfile, keyfile = self.get_paths(hostname)
		with open(certfile, 'wb') as f:
			f.write(cert_pem)
		fd = os.open(keyfile, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
		with open(fd, 'wb') as f:
			f.write(key_pem)
		return certfile, keyfile

	def get_cert(self, hostname:str):
		"""Returns (certfile, keyfile, err), generating the pair on a cache miss"""
		try:
			certfile, keyfile = self.load_from_cache(hostname)
			if certfile is not None:
				logger.debug('Cache hit for %s' % hostname)
				return certfile, keyfile, None
			logger.debug('Cache miss for %s' % hostname)

			cert_pem, key_pem, err = generate_selfsigned_cert(hostname)
			if err is not None:
				raise err
			certfile, keyfile = self.store_to_cache(hostname, cert_pem, key_pem)
			return certfile, keyfile, None
		except Exception as e:
			return None, None, e

	def get_ssl_context(self, hostname:str) -> ssl.SSLContext:
		certfile, keyfile, err = self.get_cert(hostname)
		if err is not None:
			raise err
		ssl_ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
		ssl_ctx.load_cert_chain(certfile=certfile, keyfile=keyfile)
		return ssl_ctx
