# *-* coding: utf-8 *-*
"""Certificate handling.

A :class:`Certificate` bundles an X.509 certificate with the private key
that belongs to it, when that key is available.  :func:`load` builds one
from PEM, DER or PKCS#12 material the way operators usually keep it on
disk.
"""
import logging

import attr
from asn1crypto import pem
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat import backends
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from certcrypt import exceptions

logger = logging.getLogger(__name__)

CERTIFICATE_LABELS = ('CERTIFICATE', 'X509 CERTIFICATE', 'TRUSTED CERTIFICATE')
KEY_LABELS = ('PRIVATE KEY', 'RSA PRIVATE KEY', 'EC PRIVATE KEY', 'ENCRYPTED PRIVATE KEY')


@attr.s(frozen=True)
class Certificate(object):
    certificate = attr.ib(validator=attr.validators.instance_of(x509.Certificate))
    private_key = attr.ib(default=None)
    # why the private key is missing when the material held one
    private_key_error = attr.ib(default=None)

    @property
    def has_private_key(self):
        return self.private_key is not None

    @property
    def subject(self):
        return self.certificate.subject.rfc4514_string()

    def public_key(self):
        return self.certificate.public_key()


def as_certificate(cert):
    """Wrap a bare cryptography certificate, pass a Certificate through."""
    if isinstance(cert, Certificate):
        return cert
    if isinstance(cert, x509.Certificate):
        return Certificate(cert)
    raise exceptions.InvalidCertificate(
        'expected a certificate, got %s' % type(cert).__name__
    )


def _password_bytes(password):
    if password is None or isinstance(password, bytes):
        return password
    return password.encode('utf-8')


def _spki(public_key):
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _load_private_key(loader, data, password):
    """Return (key, error), error is a readable reason when key is None."""
    try:
        try:
            return loader(data, password, backends.default_backend()), None
        except TypeError:
            if password is None:
                return None, 'private key is encrypted and no password was given'
            # a password was given for a key that is not encrypted
            return loader(data, None, backends.default_backend()), None
    except ValueError:
        return None, 'private key could not be decrypted, the password is wrong or the key is damaged'
    except UnsupportedAlgorithm as exc:
        return None, 'private key uses an unsupported algorithm: %s' % exc


def _load_pem(data, password):
    cert = None
    key, key_error = None, None
    for type_name, headers, der_bytes in pem.unarmor(data, multiple=True):
        if type_name in CERTIFICATE_LABELS and cert is None:
            cert = x509.load_der_x509_certificate(der_bytes, backends.default_backend())
        elif type_name in KEY_LABELS and key is None:
            block = pem.armor(type_name, der_bytes, headers=headers)
            key, key_error = _load_private_key(
                serialization.load_pem_private_key, block, password
            )
    return cert, key, key_error


def _load_pkcs12(data, password):
    try:
        key, cert, _ = pkcs12.load_key_and_certificates(
            data, password, backends.default_backend()
        )
    except ValueError as exc:
        raise exceptions.InvalidCertificate(
            'could not open PKCS#12 data, the password is wrong or the file is damaged'
        ) from exc
    return cert, key, None


def load_key(path, password=None):
    """Load a PEM or DER private key, return (key, error)."""
    password = _password_bytes(password)
    data = _read(path)
    if pem.detect(data):
        return _load_private_key(serialization.load_pem_private_key, data, password)
    return _load_private_key(serialization.load_der_private_key, data, password)


def _read(path):
    try:
        with open(path, 'rb') as fp:
            return fp.read()
    except OSError as exc:
        raise exceptions.InvalidCertificate(
            'cannot read %s: %s' % (path, exc.strerror or exc)
        ) from exc


def load(path, password=None, key_path=None):
    """Load a certificate and, when present, its private key.

    ``path`` may hold a PEM certificate (optionally followed or preceded by
    its private key), a DER certificate or a PKCS#12 bundle.  ``key_path``
    names a separate private key file.  A private key that cannot be
    unlocked leaves a public-only certificate with ``private_key_error``
    explaining why.
    """
    password = _password_bytes(password)
    data = _read(path)
    if pem.detect(data):
        try:
            cert, key, key_error = _load_pem(data, password)
        except ValueError as exc:
            raise exceptions.InvalidCertificate('%s: invalid PEM data: %s' % (path, exc)) from exc
    else:
        try:
            cert = x509.load_der_x509_certificate(data, backends.default_backend())
            key, key_error = None, None
            logger.debug('%s: DER certificate', path)
        except ValueError:
            logger.debug('%s: not a DER certificate, trying PKCS#12', path)
            cert, key, key_error = _load_pkcs12(data, password)
    if cert is None:
        raise exceptions.InvalidCertificate('%s: no certificate found' % path)

    if key_path is not None:
        key, key_error = load_key(key_path, password)

    if key is not None:
        try:
            cert_spki = _spki(cert.public_key())
        except (UnsupportedAlgorithm, ValueError) as exc:
            raise exceptions.InvalidCertificate(
                '%s: certificate public key cannot be used: %s' % (path, exc)
            ) from exc
        if _spki(key.public_key()) != cert_spki:
            raise exceptions.InvalidCertificate('private key does not match the certificate')
    if key_error is not None:
        logger.warning('%s: %s', path, key_error)

    result = Certificate(cert, key, key_error)
    logger.info(
        'loaded certificate %s (private key %s)',
        result.subject, 'available' if result.has_private_key else 'unavailable'
    )
    return result
