#!/usr/bin/env python3
# coding: utf-8
import base64
import unittest

from asn1crypto import pem
from cryptography import x509
from cryptography.hazmat.backends import default_backend
from certcrypt import certificate, envelope, exceptions
from certcrypt.envelope import asn
from certcrypt.envelope.encrypt import EncryptedData

from . import test_cert


def load_user(no, password=test_cert.PASSWORD):
    return certificate.load(test_cert.fixture(test_cert.p12(no)), password)


def flip(text, position):
    der = bytearray(base64.b64decode(text))
    der[position] ^= 0x01
    return base64.b64encode(bytes(der)).decode('ascii')


class EnvelopeTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.cert1 = load_user(1)
        cls.cert2 = load_user(2)

    def assertRoundTrip(self, plaintext):
        datae = envelope.encrypt(plaintext, self.cert1)
        self.assertEqual(envelope.decrypt(datae, self.cert1), plaintext)

    def test_hello_world(self):
        datae = envelope.encrypt('hello world', self.cert1)
        assert datae and datae.isprintable()
        self.assertEqual(envelope.decrypt(datae, self.cert1), 'hello world')
        with self.assertRaises((exceptions.KeyUnwrapFailure, exceptions.AuthenticationFailure)):
            envelope.decrypt(datae, self.cert2)

    def test_empty(self):
        datae = envelope.encrypt('', self.cert1)
        self.assertTrue(datae)
        self.assertEqual(envelope.decrypt(datae, self.cert1), '')

    def test_non_ascii(self):
        self.assertRoundTrip('zażółć gęślą jaźń € \U0001f510 日本語')

    def test_larger_than_rsa_block(self):
        # far beyond the 190 bytes RSA-2048 OAEP-SHA256 can carry
        self.assertRoundTrip('0123456789abcdef' * 4096)

    def test_multiline(self):
        self.assertRoundTrip('[database]\r\nuser = admin\npassword = s3cr3t\n')

    def test_fresh_randomness(self):
        self.assertNotEqual(
            envelope.encrypt('hello world', self.cert1),
            envelope.encrypt('hello world', self.cert1),
        )

    def test_armor(self):
        datae = envelope.encrypt('hello world', self.cert1, armor=True)
        self.assertTrue(datae.startswith('-----BEGIN CERTCRYPT ENVELOPE-----'))
        self.assertEqual(envelope.decrypt(datae, self.cert1), 'hello world')

    def test_whitespace_in_compact_form(self):
        datae = envelope.encrypt('hello world', self.cert1)
        wrapped = '\n'.join(datae[i:i + 64] for i in range(0, len(datae), 64))
        self.assertEqual(envelope.decrypt('  ' + wrapped + '\n', self.cert1), 'hello world')

    def test_envelope_structure(self):
        datae = envelope.encrypt('hello world', self.cert1)
        parsed = asn.load(datae)
        self.assertEqual(parsed['version'].native, 'v1')
        ktri = parsed['recipient_info'].chosen
        self.assertEqual(ktri['rid'].name, 'issuer_and_serial_number')
        self.assertEqual(
            ktri['rid'].chosen['serial_number'].native,
            self.cert1.certificate.serial_number,
        )
        keyalgo = ktri['key_encryption_algorithm'].native
        self.assertEqual(keyalgo['algorithm'], 'rsaes_oaep')
        self.assertEqual(keyalgo['parameters']['hash_algorithm']['algorithm'], 'sha256')
        content = parsed['auth_encrypted_content_info']
        self.assertEqual(content['content_encryption_algorithm'].native, 'aes256_gcm')
        self.assertEqual(len(content['nonce'].native), 12)
        self.assertEqual(len(content['mac'].native), 16)
        self.assertEqual(len(content['encrypted_content'].native), len('hello world'))

    def test_tamper_every_byte(self):
        datae = envelope.encrypt('hello world', self.cert1)
        size = len(base64.b64decode(datae))
        for position in range(size):
            with self.assertRaises(
                (exceptions.AuthenticationFailure, exceptions.MalformedInput),
                msg='byte %d' % position,
            ):
                envelope.decrypt(flip(datae, position), self.cert1)

    def test_tamper_tags(self):
        # OBJECT IDENTIFIER tags turned into ObjectDescriptor
        datae = envelope.encrypt('hello world', self.cert1)
        der = base64.b64decode(datae)
        positions = [i for i, byte in enumerate(der) if byte == 0x06]
        self.assertTrue(positions)
        for position in positions:
            with self.assertRaises(
                (exceptions.AuthenticationFailure, exceptions.MalformedInput),
                msg='byte %d' % position,
            ):
                envelope.decrypt(flip(datae, position), self.cert1)

    def test_content_algorithm_tag(self):
        datae = envelope.encrypt('hello world', self.cert1)
        position = base64.b64decode(datae).find(b'\x06\x09\x60\x86\x48\x01\x65\x03\x04\x01\x2e')
        self.assertGreater(position, 0)
        with self.assertRaises(exceptions.MalformedInput):
            asn.load(flip(datae, position))

    def test_tamper_content(self):
        datae = envelope.encrypt('hello world', self.cert1)
        with self.assertRaises(exceptions.AuthenticationFailure):
            envelope.decrypt(flip(datae, -1), self.cert1)

    def test_wrong_certificate(self):
        datae = envelope.encrypt('hello world', self.cert2)
        with self.assertRaises(exceptions.KeyUnwrapFailure):
            envelope.decrypt(datae, self.cert1)

    def test_public_only(self):
        public = certificate.load(test_cert.fixture(test_cert.cert(1)))
        datae = envelope.encrypt('hello world', public)
        with self.assertRaises(exceptions.PrivateKeyUnavailable):
            envelope.decrypt(datae, public)
        with self.assertRaises(exceptions.PrivateKeyUnavailable):
            envelope.decrypt(datae, public.certificate)
        self.assertEqual(envelope.decrypt(datae, self.cert1), 'hello world')

    def test_locked_private_key(self):
        locked = certificate.load(
            test_cert.fixture(test_cert.cert(1)),
            key_path=test_cert.fixture(test_cert.key(1)),
        )
        datae = envelope.encrypt('hello world', locked)
        with self.assertRaises(exceptions.PrivateKeyUnavailable) as cm:
            envelope.decrypt(datae, locked)
        self.assertIn('password', str(cm.exception))

    def test_bare_objects(self):
        datae = envelope.encrypt('hello world', self.cert1.certificate)
        self.assertEqual(envelope.decrypt(datae, self.cert1.private_key), 'hello world')
        # a bare key cannot check the recipient identifier
        with self.assertRaises(exceptions.AuthenticationFailure):
            envelope.decrypt(datae, self.cert2.private_key)

    def test_bare_key_tampered_wrapped_key(self):
        datae = envelope.encrypt('hello world', self.cert1)
        wrapped = asn.load(datae)['recipient_info'].chosen['encrypted_key'].native
        position = base64.b64decode(datae).find(wrapped) + len(wrapped) // 2
        with self.assertRaises(exceptions.AuthenticationFailure):
            envelope.decrypt(flip(datae, position), self.cert1.private_key)
        with self.assertRaises(exceptions.AuthenticationFailure):
            envelope.decrypt(flip(datae, position), self.cert1)

    def test_unknown_key_algorithm(self):
        bad = x509.load_der_x509_certificate(test_cert.unknown_key_der(1), default_backend())
        with self.assertRaises(exceptions.InvalidCertificate):
            envelope.encrypt('hello world', bad)
        with self.assertRaises(exceptions.InvalidCertificate):
            EncryptedData(bad, check_key_usage=False)

    def test_ec_certificate(self):
        cert3 = load_user(3)
        with self.assertRaises(exceptions.InvalidCertificate):
            envelope.encrypt('hello world', cert3)
        datae = envelope.encrypt('hello world', self.cert1)
        with self.assertRaises(exceptions.KeyUnwrapFailure):
            envelope.decrypt(datae, cert3)

    def test_key_usage(self):
        cert4 = load_user(4)
        with self.assertRaises(exceptions.InvalidCertificate):
            envelope.encrypt('hello world', cert4)
        datae = envelope.encrypt('hello world', cert4, check_key_usage=False)
        self.assertEqual(envelope.decrypt(datae, cert4), 'hello world')

    def test_not_a_certificate(self):
        with self.assertRaises(exceptions.InvalidCertificate):
            envelope.encrypt('hello world', 'user1.crt.pem')

    def test_encoding_failure(self):
        with self.assertRaises(exceptions.EncodingFailure):
            envelope.encrypt('lone surrogate \ud800', self.cert1)
        with self.assertRaises(exceptions.EncodingFailure):
            envelope.encrypt(b'hello world', self.cert1)

    def test_malformed(self):
        datae = envelope.encrypt('hello world', self.cert1)
        for text in (
            '',
            '   ',
            'not base64 !',
            'zażółć',
            base64.b64encode(b'hello world').decode('ascii'),
            datae[:-8],
            base64.b64encode(base64.b64decode(datae) + b'\x00').decode('ascii'),
            pem.armor('CERTIFICATE', base64.b64decode(datae)).decode('ascii'),
        ):
            with self.assertRaises(exceptions.MalformedInput, msg=repr(text[:40])):
                envelope.decrypt(text, self.cert1)

    def test_unsupported_version(self):
        parsed = asn.load(envelope.encrypt('hello world', self.cert1))
        changed = asn.Envelope({
            'version': 2,
            'recipient_info': parsed['recipient_info'],
            'auth_encrypted_content_info': parsed['auth_encrypted_content_info'],
        })
        with self.assertRaises(exceptions.MalformedInput):
            envelope.decrypt(asn.dump(changed), self.cert1)

    def test_not_utf8_payload(self):
        cls = EncryptedData(self.cert1.certificate)
        datae = asn.dump(cls.build(b'\xff\xfe\xfd'))
        with self.assertRaises(exceptions.MalformedInput):
            envelope.decrypt(datae, self.cert1)


if __name__ == '__main__':
    unittest.main()
