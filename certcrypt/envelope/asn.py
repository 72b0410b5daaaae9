# *-* coding: utf-8 *-*
"""ASN.1 structures and text armoring of the certcrypt envelope.

Envelope ::= SEQUENCE {
    version                     INTEGER { v1(1) },
    recipientInfo               RecipientInfo,
    authEncryptedContentInfo    AuthEncryptedContentInfo }

AuthEncryptedContentInfo ::= SEQUENCE {
    contentEncryptionAlgorithm  OBJECT IDENTIFIER,
    nonce                       OCTET STRING,
    encryptedContent            OCTET STRING,
    mac                         OCTET STRING }

RecipientInfo is the CMS structure from RFC 5652, only the key transport
choice is produced.  GCM authenticates the DER of ``version`` followed by
the DER of ``recipientInfo`` as associated data.
"""
import base64

from asn1crypto import cms, core, pem, x509
from cryptography.hazmat.primitives import serialization

from certcrypt import exceptions

PEM_LABEL = 'CERTCRYPT ENVELOPE'
KEY_SIZE = 32
NONCE_SIZE = 12
MAC_SIZE = 16


class EnvelopeVersion(core.Integer):
    _map = {
        1: 'v1',
    }


class ContentEncryptionAlgorithmId(core.ObjectIdentifier):
    _map = {
        '2.16.840.1.101.3.4.1.46': 'aes256_gcm',
    }


class AuthEncryptedContentInfo(core.Sequence):
    _fields = [
        ('content_encryption_algorithm', ContentEncryptionAlgorithmId),
        ('nonce', core.OctetString),
        ('encrypted_content', core.OctetString),
        ('mac', core.OctetString),
    ]


class Envelope(core.Sequence):
    _fields = [
        ('version', EnvelopeVersion),
        ('recipient_info', cms.RecipientInfo),
        ('auth_encrypted_content_info', AuthEncryptedContentInfo),
    ]


def cert2asn(cert):
    if isinstance(cert, x509.Certificate):
        return cert
    return x509.Certificate.load(cert.public_bytes(serialization.Encoding.DER))


def associated_data(version, recipient_info):
    return version.dump() + recipient_info.dump()


def dump(envelope, armor=False):
    der = envelope.dump()
    if armor:
        return pem.armor(PEM_LABEL, der).decode('ascii').rstrip('\n')
    return base64.b64encode(der).decode('ascii')


def _unarmor(data):
    if pem.detect(data):
        type_name, _, der = pem.unarmor(data)
        if type_name != PEM_LABEL:
            raise exceptions.MalformedInput('unexpected PEM block "%s"' % type_name)
        return der
    return base64.b64decode(b''.join(data.split()), validate=True)


def load(text):
    """Parse envelope text, compact base64 or PEM armored."""
    if not isinstance(text, (str, bytes)):
        raise exceptions.MalformedInput('ciphertext must be text, got %s' % type(text).__name__)
    if isinstance(text, str):
        try:
            text = text.encode('ascii')
        except UnicodeEncodeError as exc:
            raise exceptions.MalformedInput('ciphertext contains non-ASCII characters') from exc
    try:
        der = _unarmor(text.strip())
    except ValueError as exc:
        raise exceptions.MalformedInput('ciphertext is not valid base64 or PEM: %s' % exc) from exc
    if not der:
        raise exceptions.MalformedInput('ciphertext is empty')

    try:
        envelope = Envelope.load(der, strict=True)
        # asn1crypto parses lazily, walk the whole structure now
        envelope.native
    except (ValueError, TypeError, AttributeError, KeyError) as exc:
        raise exceptions.MalformedInput('ciphertext is not a valid envelope: %s' % exc) from exc

    version = envelope['version'].native
    if version != 'v1':
        raise exceptions.MalformedInput('unsupported envelope version %r' % version)
    if envelope['recipient_info'].name != 'ktri':
        raise exceptions.MalformedInput(
            'unsupported recipient type %s' % envelope['recipient_info'].name
        )
    content = envelope['auth_encrypted_content_info']
    algo = content['content_encryption_algorithm'].native
    if algo != 'aes256_gcm':
        raise exceptions.MalformedInput('unsupported content encryption algorithm %s' % algo)
    if len(content['nonce'].native) != NONCE_SIZE:
        raise exceptions.MalformedInput('nonce must be %d bytes' % NONCE_SIZE)
    if len(content['mac'].native) != MAC_SIZE:
        raise exceptions.MalformedInput('authentication tag must be %d bytes' % MAC_SIZE)
    return envelope
