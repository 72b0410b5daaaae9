# *-* coding: utf-8 *-*
import logging

from cryptography import x509
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from certcrypt import exceptions
from certcrypt.certificate import Certificate
from certcrypt.envelope import asn

logger = logging.getLogger(__name__)

HASHES = {
    'sha1': hashes.SHA1,
    'sha256': hashes.SHA256,
    'sha384': hashes.SHA384,
    'sha512': hashes.SHA512,
}


class DecryptedData(object):

    def __init__(self, key, cert=None):
        self.key = key
        self.cert = cert

    def key_padding(self, keyalgo):
        if keyalgo['algorithm'] != 'rsaes_oaep':
            raise exceptions.MalformedInput(
                'unsupported key encryption algorithm %s' % keyalgo['algorithm']
            )
        try:
            keyparam = keyalgo['parameters']
            mga = keyparam['mask_gen_algorithm']
            hashalgo = keyparam['hash_algorithm']['algorithm']
            mgfhash = mga['parameters']['algorithm']
            label = keyparam['p_source_algorithm']['parameters']
        except (KeyError, TypeError) as exc:
            raise exceptions.MalformedInput('incomplete RSAES-OAEP parameters') from exc
        if mga['algorithm'] != 'mgf1':
            raise exceptions.MalformedInput('unsupported mask generation function %s' % mga['algorithm'])
        for name in (hashalgo, mgfhash):
            if name not in HASHES:
                raise exceptions.MalformedInput('unsupported RSAES-OAEP hash %s' % name)
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=HASHES[mgfhash]()),
            algorithm=HASHES[hashalgo](),
            label=label or None
        )

    def addressed(self, rid):
        """Tell if the recipient identifier names our certificate.

        Returns None when only a private key is known and the identifier
        cannot be checked.
        """
        if self.cert is None:
            return None
        if rid.name == 'issuer_and_serial_number':
            tbs_cert = asn.cert2asn(self.cert)['tbs_certificate']
            return (
                rid.chosen['issuer'].dump() == tbs_cert['issuer'].dump()
                and rid.chosen['serial_number'].native == tbs_cert['serial_number'].native
            )
        if rid.name == 'subject_key_identifier':
            try:
                ski = self.cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
            except x509.ExtensionNotFound:
                return False
            return rid.chosen.native == ski.value.digest
        return False

    def unwrap(self, recipient_info):
        pad = self.key_padding(recipient_info['key_encryption_algorithm'].native)
        addressed = self.addressed(recipient_info['rid'])
        logger.debug(
            'envelope addressed to this certificate: %s',
            'unknown' if addressed is None else addressed
        )
        if not isinstance(self.key, rsa.RSAPrivateKey):
            raise exceptions.KeyUnwrapFailure(
                'a %s private key cannot unwrap an RSA wrapped content key'
                % type(self.key).__name__
            )
        try:
            session_key = self.key.decrypt(recipient_info['encrypted_key'].native, pad)
        except ValueError as exc:
            # a bare key cannot tell an altered wrapped key from another recipient
            if addressed or addressed is None:
                raise exceptions.AuthenticationFailure(
                    'wrapped content key failed its integrity check'
                ) from exc
            raise exceptions.KeyUnwrapFailure(
                'content key could not be unwrapped, the data was encrypted for a different certificate'
            ) from exc
        if len(session_key) != asn.KEY_SIZE:
            raise exceptions.AuthenticationFailure(
                'unwrapped content key has %d bytes, expected %d' % (len(session_key), asn.KEY_SIZE)
            )
        return session_key

    def decrypt(self, envelope):
        recipient_info = envelope['recipient_info'].chosen
        content = envelope['auth_encrypted_content_info']
        session_key = self.unwrap(recipient_info)

        cipher = Cipher(
            algorithms.AES(session_key),
            modes.GCM(content['nonce'].native, content['mac'].native),
            default_backend()
        )
        decryptor = cipher.decryptor()
        decryptor.authenticate_additional_data(
            asn.associated_data(envelope['version'], envelope['recipient_info'])
        )
        try:
            udata = decryptor.update(content['encrypted_content'].native) + decryptor.finalize()
        except InvalidTag as exc:
            raise exceptions.AuthenticationFailure(
                'encrypted content failed its integrity check'
            ) from exc
        return udata


def _credentials(certificate):
    if isinstance(certificate, Certificate):
        if not certificate.has_private_key:
            reason = certificate.private_key_error or 'certificate has no private key'
            raise exceptions.PrivateKeyUnavailable(reason)
        return certificate.private_key, certificate.certificate
    if isinstance(certificate, x509.Certificate):
        raise exceptions.PrivateKeyUnavailable('certificate has no private key')
    if hasattr(certificate, 'private_bytes'):
        return certificate, None
    raise exceptions.PrivateKeyUnavailable(
        'expected a certificate or private key, got %s' % type(certificate).__name__
    )


def decrypt(ciphertext, certificate):
    """Recover the text encrypted by :func:`certcrypt.envelope.encrypt`.

    ``certificate`` is a :class:`certcrypt.certificate.Certificate` holding
    a private key, or a bare private key.
    """
    key, cert = _credentials(certificate)
    envelope = asn.load(ciphertext)
    cls = DecryptedData(key, cert)
    udata = cls.decrypt(envelope)
    try:
        return udata.decode('utf-8')
    except UnicodeDecodeError as exc:
        raise exceptions.MalformedInput('decrypted content is not UTF-8 text') from exc
