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

import threading
import unittest
from http import client as httplib
from urllib import parse as urlparse

import requests_mock

from otcmachine.http import OTCConnection

JSON_HEADERS = {'content-type': 'application/json; charset=UTF-8'}


class OTCTestCase(unittest.TestCase):
    """
    Test case which records the mock methods served while it runs. Assign
    it to ``MockHttp.test`` to enable the recording.
    """

    def setUp(self):
        super(OTCTestCase, self).setUp()
        self.executed_mock_methods = []

    def assertMockMethodsExecuted(self, expected):
        self.assertEqual(self.executed_mock_methods, expected)


class MockHttp(OTCConnection):
    """
    Transport which answers requests from methods of the class instead of
    the network.

    The method serving a request is named after the request path, with
    slashes (/), dots (.) and dashes (-) replaced by underscores (_) and
    ``_<type>`` appended when :attr:`type` is set. ``GET /v2.0/networks``
    is served by ``_v2_0_networks``. Each method is called with
    ``(method, url, body, headers)`` and returns a tuple of:

        (int status, str body, dict headers, str reason)

    The response is then handed to requests through ``requests_mock`` so
    the whole requests stack still runs.
    """

    type = None
    test = None  # OTCTestCase recording the served methods

    # requests_mock patches every session of the process, concurrent
    # requests are served one at a time
    _lock = threading.Lock()

    def _get_method_name(self, path):
        name = path.rstrip('/')
        for char in '/.-':
            name = name.replace(char, '_')

        if self.type:
            name = '%s_%s' % (name, self.type)

        return name or 'root'

    def request(self, method, url, body=None, headers=None, stream=False):
        path = urlparse.urlparse(url).path
        name = self._get_method_name(path)

        if isinstance(self.test, OTCTestCase):
            self.test.executed_mock_methods.append(name)

        with self._lock:
            status, r_body, r_headers, reason = getattr(self, name)(
                method, url, body, headers)

            with requests_mock.mock() as m:
                m.register_uri(requests_mock.ANY, requests_mock.ANY,
                               text=r_body or '', reason=reason,
                               headers=r_headers, status_code=status)
                super(MockHttp, self).request(method, url, body=body,
                                              headers=headers,
                                              stream=stream)

    def _example(self, method, url, body, headers):
        return (httplib.OK, 'Hello World!', {'X-Foo': 'otcmachine'},
                httplib.responses[httplib.OK])

    def _example_fail(self, method, url, body, headers):
        return (httplib.FORBIDDEN, 'Oh Noes!', {'X-Foo': 'fail'},
                httplib.responses[httplib.FORBIDDEN])
