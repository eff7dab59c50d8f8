"""SecretGate Meta information.
   SecretGate encrypts user secrets with keys derived from a passphrase.
"""
__title__ = 'secretgate'
__description__ = (
   'SecretGate encrypts user secrets with per-record keys '
   'derived from a passphrase and an account identity.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/secretgate'
