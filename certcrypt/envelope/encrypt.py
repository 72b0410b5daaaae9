# *-* coding: utf-8 *-*
import logging
import os

from asn1crypto import cms, core, algos
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from certcrypt import exceptions
from certcrypt.certificate import as_certificate
from certcrypt.envelope import asn

logger = logging.getLogger(__name__)


class EncryptedData(object):

    def __init__(self, cert, check_key_usage=True):
        self.cert = cert
        try:
            self.public_key = cert.public_key()
        except (UnsupportedAlgorithm, ValueError) as exc:
            raise exceptions.InvalidCertificate(
                'certificate public key cannot be used: %s' % exc
            ) from exc
        if not isinstance(self.public_key, rsa.RSAPublicKey):
            raise exceptions.InvalidCertificate(
                'certificate key type %s cannot wrap a content key, an RSA certificate is required'
                % type(self.public_key).__name__
            )
        if check_key_usage:
            self.check_key_usage()

    def check_key_usage(self):
        try:
            key_usage = self.cert.extensions.get_extension_for_class(x509.KeyUsage).value
        except x509.ExtensionNotFound:
            return
        except ValueError as exc:
            raise exceptions.InvalidCertificate('certificate extensions are invalid: %s' % exc) from exc
        if not key_usage.key_encipherment:
            raise exceptions.InvalidCertificate('certificate key usage does not allow key encipherment')

    def recipient_info(self, session_key):
        tbs_cert = asn.cert2asn(self.cert)['tbs_certificate']
        try:
            encrypted_key = self.public_key.encrypt(
                session_key,
                padding.OAEP(
                    mgf=padding.MGF1(hashes.SHA256()),
                    algorithm=hashes.SHA256(),
                    label=None
                )
            )
        except ValueError as exc:
            raise exceptions.InvalidCertificate(
                'RSA key of %d bits is too small to wrap a content key' % self.public_key.key_size
            ) from exc
        kea = cms.KeyEncryptionAlgorithm({
            'algorithm': cms.KeyEncryptionAlgorithmId('rsaes_oaep'),
            'parameters': algos.RSAESOAEPParams({
                'hash_algorithm': algos.DigestAlgorithm({'algorithm': 'sha256'}),
                'mask_gen_algorithm': algos.MaskGenAlgorithm({
                    'algorithm': algos.MaskGenAlgorithmId('mgf1'),
                    'parameters': {
                        'algorithm': algos.DigestAlgorithmId('sha256'),
                    }
                }),
                'p_source_algorithm': algos.PSourceAlgorithm({
                    'algorithm': algos.PSourceAlgorithmId('p_specified'),
                    'parameters': b'',
                })
            })
        })
        return cms.RecipientInfo(
            name='ktri',
            value={
                'version': 'v0',
                'rid': cms.RecipientIdentifier(
                    name='issuer_and_serial_number',
                    value={
                        'issuer': tbs_cert['issuer'],
                        'serial_number': tbs_cert['serial_number']
                    }
                ),
                'key_encryption_algorithm': kea,
                'encrypted_key': core.OctetString(encrypted_key)
            }
        )

    def build(self, data):
        session_key = os.urandom(asn.KEY_SIZE)
        nonce = os.urandom(asn.NONCE_SIZE)
        version = asn.EnvelopeVersion('v1')
        recipient_info = self.recipient_info(session_key)

        cipher = Cipher(
            algorithms.AES(session_key),
            modes.GCM(nonce),
            default_backend()
        )
        encryptor = cipher.encryptor()
        encryptor.authenticate_additional_data(asn.associated_data(version, recipient_info))
        data = encryptor.update(data) + encryptor.finalize()

        return asn.Envelope({
            'version': version,
            'recipient_info': recipient_info,
            'auth_encrypted_content_info': {
                'content_encryption_algorithm': 'aes256_gcm',
                'nonce': nonce,
                'encrypted_content': data,
                'mac': encryptor.tag,
            }
        })


def encrypt(plaintext, certificate, armor=False, check_key_usage=True):
    """Encrypt text for the holder of ``certificate``.

    Returns printable text, a single base64 line or a PEM block when
    ``armor`` is set.
    """
    cert = as_certificate(certificate).certificate
    if not isinstance(plaintext, str):
        raise exceptions.EncodingFailure(
            'plaintext must be text, got %s' % type(plaintext).__name__
        )
    try:
        data = plaintext.encode('utf-8')
    except UnicodeEncodeError as exc:
        raise exceptions.EncodingFailure('plaintext cannot be encoded as UTF-8: %s' % exc) from exc

    cls = EncryptedData(cert, check_key_usage)
    envelope = cls.build(data)
    try:
        result = asn.dump(envelope, armor)
    except ValueError as exc:
        raise exceptions.EncodingFailure('envelope could not be serialized: %s' % exc) from exc
    logger.debug('encrypted %d bytes into %d characters', len(data), len(result))
    return result
