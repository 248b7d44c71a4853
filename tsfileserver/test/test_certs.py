import os
import ssl

import pytest
from cryptography import x509

from tsfileserver.network.certs import CertStore, generate_selfsigned_cert


def test_generate_selfsigned_cert_for_hostname():
	cert_pem, key_pem, err = generate_selfsigned_cert('mynode')
	assert err is None
	assert b'PRIVATE KEY' in key_pem
	cert = x509.load_pem_x509_certificate(cert_pem)
	san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
	assert san.get_values_for_type(x509.DNSName) == ['mynode']

def test_generate_selfsigned_cert_for_ip():
	cert_pem, _, err = generate_selfsigned_cert('127.0.0.1')
	assert err is None
	cert = x509.load_pem_x509_certificate(cert_pem)
	san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
	assert [str(ip) for ip in san.get_values_for_type(x509.IPAddress)] == ['127.0.0.1']

def test_store_reuses_cached_certificate(tmp_path):
	store = CertStore(str(tmp_path / 'state'))
	certfile, keyfile, err = store.get_cert('mynode')
	assert err is None
	assert os.path.dirname(certfile) == str(tmp_path / 'state')
	with open(certfile, 'rb') as f:
		first = f.read()

	certfile2, keyfile2, err = CertStore(str(tmp_path / 'state')).get_cert('mynode')
	assert err is None
	assert (certfile2, keyfile2) == (certfile, keyfile)
	with open(certfile2, 'rb') as f:
		assert f.read() == first

@pytest.mark.skipif(os.name != 'posix', reason='posix permissions')
def test_key_is_private(tmp_path):
	_, keyfile, err = CertStore(str(tmp_path)).get_cert('mynode')
	assert err is None
	assert os.stat(keyfile).st_mode & 0o777 == 0o600

def test_ssl_context_is_server_side(tmp_path):
	ssl_ctx = CertStore(str(tmp_path)).get_ssl_context('mynode')
	assert isinstance(ssl_ctx, ssl.SSLContext)
	assert ssl_ctx.protocol == ssl.PROTOCOL_TLS_SERVER
