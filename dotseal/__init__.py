"""
dotseal encrypts the values of .env files while keeping them readable.

Keys, comments and ordering are left as they are. Each value is replaced with a
base64 envelope holding a random salt, a random IV and the AES-256-CBC
ciphertext, keyed with PBKDF2-HMAC-SHA256 from your password.

Configure the password (applies to all commands that need one):

\b
    $ export DOTSEAL_PASSWORD="correct horse battery staple"

Encrypt a .env file into a matching .env.enc file:

\b
    $ dotseal encrypt .env
    $ git add .env.enc

Check that a password opens an encrypted file:

\b
    $ dotseal validate .env.enc

Decrypt an encrypted file into a plaintext file:

\b
    $ dotseal decrypt .env.enc --output .env.local
"""

__version__ = '1.0.0'
