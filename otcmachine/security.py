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

"""
TLS settings of all the connections.

Usage::

    import otcmachine.security

    # Custom CA bundle, also read from the SSL_CERT_FILE environment variable
    otcmachine.security.CA_CERTS_PATH = '/path/to/bundle.pem'

    # Never do this outside of tests
    otcmachine.security.VERIFY_SSL_CERT = False
"""

import os

__all__ = [
    'VERIFY_SSL_CERT',
    'CA_CERTS_PATH'
]

VERIFY_SSL_CERT = True

# PEM file with the trusted CA certificates. None means the bundle of
# requests (certifi).
CA_CERTS_PATH = os.getenv('SSL_CERT_FILE')

if CA_CERTS_PATH is not None:
    if not os.path.exists(CA_CERTS_PATH):
        raise ValueError('Certificate file %s doesn\'t exist' %
                         (CA_CERTS_PATH))

    if not os.path.isfile(CA_CERTS_PATH):
        raise ValueError('Certificate file can\'t be a directory')

VERIFY_SSL_DISABLED_MSG = (
    'SSL certificate verification is disabled, the identity of the API '
    'endpoints is not checked.'
)
