#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
from codecs import open
from os import path

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.rst'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='certcrypt',
    version=__import__('certcrypt').__version__,
    description='Encrypt and decrypt small text payloads with an X.509 certificate.',
    long_description=long_description,
    long_description_content_type='text/x-rst',
    author='certcrypt developers',
    license='MIT',
    classifiers=[
        'Development Status :: 5 - Production/Stable',
        'Environment :: Console',
        'Operating System :: OS Independent',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Topic :: Security :: Cryptography',
        'Topic :: Utilities',
    ],
    keywords='cryptography pki x509 rsa aes-gcm envelope cli',
    packages=find_packages(exclude=['examples', 'tests']),
    include_package_data=True,
    platforms=["all"],
    python_requires='>=3.8',
    install_requires=['cryptography', 'asn1crypto', 'attrs', 'click'],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'certcrypt = certcrypt.cli:main',
        ],
    },
    test_suite="tests",
)
