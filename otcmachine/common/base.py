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
Connection and response classes the service connections are built on.

A :class:`Connection` knows a base URL and turns an action path plus
parameters into a request on its transport (``conn_class``). The answer is
wrapped into ``responseCls`` which raises a typed error for non 2xx codes
and parses the body.
"""

import json
from http import client as httplib
from urllib import parse as urlparse
from urllib.parse import urlencode

import otcmachine

from otcmachine.common.exceptions import exception_from_message
from otcmachine.common.types import OTCMachineError, MalformedResponseError
from otcmachine.http import OTCConnection
from otcmachine.utils.misc import lowercase_keys

__all__ = [
    'Response',
    'JsonResponse',
    'Connection',
    'ConnectionUserAndKey'
]

DEFAULT_PORTS = {
    'http': 80,
    'https': 443
}


class Response(object):
    """
    Response of a :class:`Connection`.

    :ivar status: HTTP status code.
    :ivar headers: Response headers with lower case names.
    :ivar body: Response text, stripped.
    :ivar object: Parsed body, see :meth:`parse_body`.
    :ivar error: Reason phrase of the status.
    """

    status = httplib.OK  # type: int
    headers = {}  # type: dict
    body = None
    object = None
    error = None
    connection = None

    def __init__(self, response, connection):
        """
        :param response: Response returned by the transport.
        :type response: :class:`requests.Response`

        :param connection: Connection which sent the request.
        :type connection: :class:`Connection`
        """
        self.connection = connection
        self.status = response.status_code
        self.error = response.reason
        self.headers = lowercase_keys(dict(response.headers))
        self.body = (response.text or '').strip()

        if not self.success():
            raise exception_from_message(code=self.status,
                                         message=self.parse_error(),
                                         headers=self.headers)

        self.object = self.parse_body()

    def parse_body(self):
        return self.body

    def parse_error(self):
        return self.body

    def success(self):
        """
        :return: ``True`` for the 2xx codes the APIs answer with.
        :rtype: ``bool``
        """
        return self.status in [httplib.OK, httplib.CREATED,
                               httplib.ACCEPTED, httplib.NO_CONTENT]


class JsonResponse(Response):
    """
    Response with a JSON body. An empty body is kept as is.
    """

    def parse_body(self):
        if not self.body:
            return self.body

        try:
            return json.loads(self.body)
        except ValueError:
            raise MalformedResponseError('Failed to parse JSON',
                                         body=self.body)

    parse_error = parse_body


class Connection(object):
    """
    Base connection to an API, bound to a host and a base path.

    :param secure: Use HTTPS.
    :type secure: ``bool``

    :param host: Host name.
    :type host: ``str``

    :param port: Port, defaults to the port of the scheme.
    :type port: ``int``

    :param url: Base URL, overrides ``host``, ``port`` and ``secure``.
    :type url: ``str``

    :param timeout: Timeout of a single request in seconds.
    :type timeout: ``int``

    :param proxy_url: Proxy used for all the requests.
    :type proxy_url: ``str``
    """

    conn_class = OTCConnection
    responseCls = Response

    connection = None
    host = '127.0.0.1'  # type: str
    port = 443
    secure = 1
    timeout = None  # type: int
    proxy_url = None
    request_path = ''

    def __init__(self, secure=True, host=None, port=None, url=None,
                 timeout=None, proxy_url=None):
        self.secure = 1 if secure else 0
        self.host = host or self.host
        self.port = port or DEFAULT_PORTS['https' if secure else 'http']
        self.timeout = timeout or self.timeout
        self.proxy_url = proxy_url
        self.ua = []

        if url:
            (self.host, self.port, self.secure,
             self.request_path) = self._tuple_from_url(url)

    def _tuple_from_url(self, url):
        """
        Split a URL into the parts a connection is bound to.

        :rtype: ``tuple`` (``host``, ``port``, ``secure``, ``request_path``)
        """
        parsed = urlparse.urlparse(url)

        if parsed.scheme not in DEFAULT_PORTS:
            raise OTCMachineError('Invalid scheme: %s in url %s' %
                                  (parsed.scheme, url))

        port = parsed.port or DEFAULT_PORTS[parsed.scheme]
        secure = 1 if parsed.scheme == 'https' else 0

        return (parsed.hostname, int(port), secure, parsed.path.rstrip('/'))

    def connect(self, base_url=None):
        """
        Create the transport. ``base_url`` (or the ``base_url`` attribute
        when set) takes precedence over the host and port of the
        connection.
        """
        base_url = base_url or getattr(self, 'base_url', None)

        if base_url:
            host, port, secure, _ = self._tuple_from_url(base_url)
        else:
            host, port, secure = self.host, self.port, self.secure

        kwargs = {'host': host, 'port': int(port), 'secure': secure}

        if self.timeout:
            kwargs['timeout'] = self.timeout

        if self.proxy_url:
            kwargs['proxy_url'] = self.proxy_url

        self.connection = self.conn_class(**kwargs)

    def _user_agent(self):
        suffix = ' '.join(['(%s)' % (token) for token in self.ua])
        return ('otcmachine/%s %s' % (otcmachine.__version__, suffix)).strip()

    def user_agent_append(self, token):
        """
        Append a token to the user agent, e.g. the name of the tool using
        the library.

        :type token: ``str``
        """
        self.ua.append(token)

    def request(self, action, params=None, data=None, headers=None,
                method='GET', stream=False):
        """
        Send a request and wrap the answer into :attr:`responseCls`.

        :param action: Path relative to the base path of the connection.
                       It can include a query string, ``params`` are
                       appended to it.
        :type action: ``str``

        :param params: Query parameters.
        :type params: ``dict``

        :param data: Request body, see :meth:`encode_data`.

        :param headers: Extra headers.
        :type headers: ``dict``

        :param method: HTTP method.
        :type method: ``str``

        :rtype: :class:`Response`
        """
        url = self.morph_action_hook(action)

        headers = self.add_default_headers(dict(headers or {}))
        headers['User-Agent'] = self._user_agent()
        headers['Accept-Encoding'] = 'gzip,deflate'

        if params:
            separator = '&' if '?' in url else '?'
            url = separator.join((url, urlencode(params, doseq=True)))

        if data:
            data = self.encode_data(data)

        if self.connection is None:
            self.connect()

        self.connection.request(method=method, url=url, body=data,
                                headers=headers, stream=stream)

        return self.responseCls(response=self.connection.getresponse(),
                                connection=self)

    def morph_action_hook(self, action):
        """
        Prefix ``action`` with the base path of the connection.
        """
        path = '/'.join((self.request_path.strip('/'), action.lstrip('/')))
        return '/' + path.lstrip('/')

    def add_default_headers(self, headers):
        """
        Add the headers every request of the connection carries.

        :rtype: ``dict``
        """
        return headers

    def encode_data(self, data):
        return data


class ConnectionUserAndKey(Connection):
    """
    Connection authenticated with a user name (``user_id``) and a secret
    (``key``).
    """

    user_id = None  # type: str
    key = None  # type: str

    def __init__(self, user_id, key, secure=True, host=None, port=None,
                 url=None, timeout=None, proxy_url=None):
        super(ConnectionUserAndKey, self).__init__(secure=secure, host=host,
                                                   port=port, url=url,
                                                   timeout=timeout,
                                                   proxy_url=proxy_url)
        self.user_id = user_id
        self.key = key
