# *-* coding: utf-8 *-*
"""certcrypt exceptions."""


class CertCryptError(Exception):
    """Base class for every failure reported by certcrypt."""

    kind = "error"


class InvalidCertificate(CertCryptError):
    """The certificate cannot be used (unreadable, no usable public key)."""

    kind = "invalid certificate"


class PrivateKeyUnavailable(CertCryptError):
    """The certificate has no accessible private key."""

    kind = "private key unavailable"


class MalformedInput(CertCryptError):
    """The ciphertext cannot be parsed into an envelope."""

    kind = "malformed input"


class AuthenticationFailure(CertCryptError):
    """The envelope failed its integrity check."""

    kind = "authentication failure"


class KeyUnwrapFailure(CertCryptError):
    """The content key could not be unwrapped, the envelope is for another certificate."""

    kind = "key unwrap failure"


class EncodingFailure(CertCryptError):
    """The envelope could not be produced."""

    kind = "encoding failure"


class ArgumentError(CertCryptError):
    """Invalid command line usage."""

    kind = "argument error"
