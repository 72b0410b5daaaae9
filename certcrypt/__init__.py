# *-* coding: utf-8 *-*
"""Certificate based encryption of small text payloads.

The envelope is encrypted with a fresh AES-256-GCM key which is wrapped
with the RSA key of an X.509 certificate, see :mod:`certcrypt.envelope`.
"""
__author__ = 'certcrypt developers'
__license__ = 'MIT'
__version__ = '1.0.0'
