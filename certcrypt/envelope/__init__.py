# *-* coding: utf-8 *-*
from .encrypt import encrypt
from .decrypt import decrypt

__all__ = ['encrypt', 'decrypt']
