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
Transport which writes every request as a ``curl`` command, followed by
the response, to :attr:`LoggingConnection.log`.
"""

import json
import os
from shlex import quote as pquote

from otcmachine.http import OTCConnection, HttpResponseProxy
from otcmachine.utils.misc import lowercase_keys

__all__ = [
    'LoggingConnection'
]

PRETTY_PRINT_ENV_VARIABLE_NAME = 'OTCMACHINE_DEBUG_PRETTY_PRINT_RESPONSE'

# Values of these headers are masked in the log
SENSITIVE_HEADERS = ['x-auth-token', 'x-subject-token']

MASK = '***'

HTTP_VERSIONS = {
    10: 'HTTP/1.0',
    11: 'HTTP/1.1'
}


def _to_text(data):
    if isinstance(data, (bytes, bytearray)):
        return data.decode('utf-8')
    return data


def _mask_header(name, value):
    if name.lower() in SENSITIVE_HEADERS:
        return MASK
    return value


def _mask_password(body):
    """
    Mask the user password of a Keystone password authentication body.
    """
    try:
        data = json.loads(body)
        user = data['auth']['identity']['password']['user']
    except (ValueError, TypeError, KeyError):
        return body

    if 'password' not in user:
        return body

    user['password'] = MASK
    return json.dumps(data)


class LoggingConnection(OTCConnection):
    """
    :cvar log: File like object the entries are written to. Nothing is
               logged while it is ``None``.
    """

    log = None

    def _write(self, entry):
        self.log.write(entry + '\n')
        self.log.flush()

    def _format_body(self, body, headers):
        body = _to_text(body)
        content_type = (headers.get('content-type') or '').split(';')[0]

        if (os.environ.get(PRETTY_PRINT_ENV_VARIABLE_NAME) and
                content_type.strip() == 'application/json'):
            try:
                return json.dumps(json.loads(body), sort_keys=True, indent=4)
            except ValueError:
                # content-type says JSON but the body isn't
                pass

        return body

    def _log_response(self, r):
        marker = '%d:%d response' % (id(self), id(r))
        lines = ['%s %s %s' % (HTTP_VERSIONS.get(r.version, r.version),
                               r.status, r.reason)]

        body = r.read()
        headers = r.getheaders()
        lines.extend('%s: %s' % (name.title(), _mask_header(name, value))
                     for name, value in headers)

        entry = '\r\n'.join(lines) + '\r\n\r\n'
        entry += self._format_body(body, lowercase_keys(dict(headers)))

        return ('# -------- begin %s ----------\n%s'
                '\n# -------- end %s ----------\n' % (marker, entry, marker))

    def _proxy_url(self):
        credentials = ''
        if self.proxy_username and self.proxy_password:
            credentials = '%s:%s@' % (self.proxy_username,
                                      self.proxy_password)
        return '%s://%s%s:%s' % (self.proxy_scheme, credentials,
                                 self.proxy_host, self.proxy_port)

    def _log_curl(self, method, url, body, headers):
        cmd = ['curl']

        if self.http_proxy_used:
            cmd.extend(['--proxy', pquote(self._proxy_url())])

        cmd.append('-i')

        if method.upper() == 'HEAD':
            cmd.append('--head')
        else:
            cmd.extend(['-X', pquote(method)])

        for name, value in headers.items():
            value = _mask_header(name, value)
            cmd.extend(['-H', pquote('%s: %s' % (name, value))])

        if body:
            cmd.extend(['--data-binary',
                        pquote(_mask_password(_to_text(body)))])

        cmd.append('--compress')
        cmd.append(pquote('%s%s' % (self.host, url)))
        return ' '.join(cmd)

    def getresponse(self):
        response = OTCConnection.getresponse(self)
        if self.log is not None:
            self._write(self._log_response(HttpResponseProxy(response)))
        return response

    def request(self, method, url, body=None, headers=None, stream=False):
        headers = dict(headers or {})
        headers['X-OTC-Request-ID'] = str(id(self))

        if self.log is not None:
            self._write('# -------- begin %d request ----------\n%s' %
                        (id(self), self._log_curl(method, url, body,
                                                  headers)))

        return OTCConnection.request(self, method, url, body=body,
                                     headers=headers, stream=stream)
