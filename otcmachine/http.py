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
requests based transport shared by all the service connections.

A connection wraps a :class:`requests.Session` bound to one base URL and
exposes the small ``request`` / ``getresponse`` / ``read`` surface the
:class:`otcmachine.common.base.Connection` classes are written against.
"""

import os
import warnings
from urllib import parse as urlparse

import requests

import otcmachine.security

__all__ = [
    'OTCConnection',
    'HttpResponseProxy',
    'DEFAULT_REQUEST_TIMEOUT'
]

# Default timeout for HTTP requests in seconds
DEFAULT_REQUEST_TIMEOUT = 60

PROXY_ENV_VARIABLE_NAMES = ['http_proxy', 'https_proxy']

DEFAULT_PORTS = {
    'http': 80,
    'https': 443
}


def _base_url(host, port, secure):
    scheme = 'https' if secure or port == 443 else 'http'
    if port in DEFAULT_PORTS.values():
        return '%s://%s' % (scheme, host)
    return '%s://%s:%s' % (scheme, host, port)


def _proxy_url_from_env():
    # http_proxy wins when both are set, a single proxy serves both schemes
    for name in PROXY_ENV_VARIABLE_NAMES:
        value = os.environ.get(name)
        if value:
            return value
    return None


class OTCConnection(object):
    """
    HTTP(s) connection to a single host.

    :param host: Host name.
    :type host: ``str``

    :param port: Port, 443 always means HTTPS.
    :type port: ``int``

    :param secure: Use HTTPS.
    :type secure: ``bool``

    :param proxy_url: Proxy used for all the requests. Defaults to the
                      ``http_proxy`` / ``https_proxy`` environment
                      variables.
    :type proxy_url: ``str``

    :param timeout: Timeout of a single request in seconds.
    :type timeout: ``int``
    """

    http_proxy_used = False
    proxy_scheme = None
    proxy_host = None
    proxy_port = None
    proxy_username = None
    proxy_password = None

    ca_cert = None
    response = None

    def __init__(self, host, port, secure=None, proxy_url=None,
                 timeout=None):
        self.host = _base_url(host, port, secure)
        self.timeout = timeout or DEFAULT_REQUEST_TIMEOUT
        self.session = requests.Session()

        self.verify = otcmachine.security.VERIFY_SSL_CERT
        if self.verify:
            self.ca_cert = otcmachine.security.CA_CERTS_PATH
        else:
            warnings.warn(otcmachine.security.VERIFY_SSL_DISABLED_MSG)

        proxy_url = proxy_url or _proxy_url_from_env()
        if proxy_url:
            self.set_http_proxy(proxy_url)

    def set_http_proxy(self, proxy_url):
        """
        Route all the requests through a HTTP proxy.

        :param proxy_url: ``<scheme>://<host>:<port>``, optionally with
                          ``<username>:<password>@`` for basic auth.
        :type proxy_url: ``str``
        """
        (self.proxy_scheme, self.proxy_host, self.proxy_port,
         self.proxy_username, self.proxy_password) = \
            self._parse_proxy_url(proxy_url)
        self.http_proxy_used = True
        self.session.proxies = {'http': proxy_url, 'https': proxy_url}

    def _parse_proxy_url(self, proxy_url):
        """
        :rtype: ``tuple`` (``scheme``, ``hostname``, ``port``,
                ``username``, ``password``)
        """
        parsed = urlparse.urlparse(proxy_url)

        if parsed.scheme not in DEFAULT_PORTS:
            raise ValueError('Only http and https proxies are supported')

        if not parsed.hostname or not parsed.port:
            raise ValueError('proxy_url must be in the following format: '
                             '<scheme>://<proxy host>:<proxy port>')

        if parsed.username is not None and parsed.password is None:
            raise ValueError('Proxy URL is in an invalid format, '
                             'password is missing')

        return (parsed.scheme, parsed.hostname, parsed.port,
                parsed.username, parsed.password)

    @property
    def verification(self):
        """
        Value of the ``verify`` argument of requests: the CA bundle path
        or a flag.
        """
        return self.ca_cert if self.ca_cert is not None else self.verify

    def connect(self):  # pragma: no cover
        pass

    def request(self, method, url, body=None, headers=None, stream=False):
        headers = dict((key, str(value) if isinstance(value, (int, float))
                        else value)
                       for key, value in (headers or {}).items())

        self.response = self.session.request(
            method=method.upper(),
            url=urlparse.urljoin(self.host, url),
            data=body,
            headers=headers,
            stream=stream,
            verify=self.verification,
            timeout=self.timeout)

    def getresponse(self):
        return self.response

    @property
    def status(self):
        return self.response.status_code

    def read(self):
        return self.response.content

    def close(self):  # pragma: no cover
        if self.response is not None:
            self.response.close()


class HttpResponseProxy(object):
    """
    Gives a :class:`requests.Response` the interface of
    :class:`http.client.HTTPResponse` the debug log is written against.
    """

    # requests doesn't expose the protocol version
    version = 11

    def __init__(self, response):
        self._response = response

    def read(self, amt=None):
        return self._response.text

    def getheader(self, name, default=None):
        return self._response.headers.get(name, default)

    def getheaders(self):
        return list(self._response.headers.items())

    @property
    def status(self):
        return self._response.status_code

    @property
    def reason(self):
        return self._response.reason

    @property
    def body(self):
        return self._response.content
