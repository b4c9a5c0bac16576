# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import base64
import hashlib

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

__all__ = [
    'KeyPairMaterial',
    'generate_key_pair',
    'get_pubkey_openssh_fingerprint'
]

DEFAULT_KEY_SIZE = 2048


class KeyPairMaterial(object):
    """
    Locally generated SSH key pair.

    :ivar public_key: Public key in the OpenSSH format (ssh-rsa AAAA...).
    :ivar private_key: Unencrypted private key, PEM encoded.
    """

    def __init__(self, public_key, private_key):
        self.public_key = public_key
        self.private_key = private_key


def _to_md5_fingerprint(data):
    hashed = hashlib.md5(data).hexdigest()
    return ':'.join(hashed[i:i + 2] for i in range(0, len(hashed), 2))


def generate_key_pair(key_size=DEFAULT_KEY_SIZE):
    """
    Generate a new RSA key pair suitable for importing as an instance key
    pair.

    :param key_size: Size of the key in bits.
    :type key_size: ``int``

    :rtype: :class:`KeyPairMaterial`
    """
    key = rsa.generate_private_key(public_exponent=65537,
                                   key_size=key_size,
                                   backend=default_backend())

    private_key = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption())
    public_key = key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH)

    return KeyPairMaterial(public_key=public_key.decode('utf-8'),
                           private_key=private_key.decode('utf-8'))


def get_pubkey_openssh_fingerprint(pubkey):
    """
    Return the MD5 fingerprint of an OpenSSH public key the way Nova reports
    it (``aa:bb:...``).
    """
    # We import and export the key to make sure it is in OpenSSH format
    public_key = serialization.load_ssh_public_key(
        pubkey.encode('utf-8'),
        backend=default_backend()
    )
    pub_openssh = public_key.public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    ).split(b' ')[1]
    return _to_md5_fingerprint(base64.b64decode(pub_openssh))
