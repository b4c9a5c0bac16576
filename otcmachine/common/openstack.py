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
Connections to the OpenStack style services of the cloud. The endpoint of
a service is looked up in the Keystone catalog after authentication.
"""

import json
from http import client as httplib

from otcmachine.common.base import ConnectionUserAndKey, Response
from otcmachine.common.types import OTCMachineError, MalformedResponseError
from otcmachine.common.openstack_identity import \
    OpenStackIdentity_3_0_Connection

__all__ = [
    'OpenStackBaseConnection',
    'OpenStackResponse',
]


class OpenStackResponse(Response):
    """
    JSON response of a service. Bodies of any other content type are kept
    as text and ``204 No Content`` is parsed to ``None``.
    """

    def success(self):
        return 200 <= int(self.status) <= 299

    def has_content_type(self, content_type):
        value = self.headers.get('content-type') or ''
        return content_type.lower() in value.lower()

    def parse_body(self):
        if self.status == httplib.NO_CONTENT or not self.body:
            return None

        if not self.has_content_type('application/json'):
            return self.body

        try:
            return json.loads(self.body)
        except ValueError:
            raise MalformedResponseError('Failed to parse JSON',
                                         body=self.body)

    def parse_error(self):
        """
        Build the error message from the error body.

        The VPC API answers with ``{"code": ..., "message": ...}``, Nova and
        Neutron nest the message, e.g.
        ``{"itemNotFound": {"code": 404, "message": ...}}``.

        :return: ``<status> <reason> <message>``
        :rtype: ``str``
        """
        try:
            body = self.parse_body()
        except MalformedResponseError:
            body = self.body

        text = body
        if isinstance(body, dict):
            if 'message' in body:
                text = body['message']
            else:
                messages = [value['message'] for value in body.values()
                            if isinstance(value, dict) and 'message' in value]
                text = ';'.join(messages) if messages else json.dumps(body)

        return '%s %s %s' % (self.status, self.error, text)


class OpenStackBaseConnection(ConnectionUserAndKey):
    """
    Connection to a single service. Subclasses set :attr:`service_type`,
    the type of the service in the catalog.

    :param user_id: User name to authenticate with.
    :type user_id: ``str``

    :param key: Password of the user.
    :type key: ``str``

    :param ex_force_base_url: Endpoint of the service, skips the catalog
                              lookup.
    :type ex_force_base_url: ``str``

    :param ex_force_auth_url: Keystone endpoint.
    :type ex_force_auth_url: ``str``

    :param ex_domain_name: Domain of the user and the project.
    :type ex_domain_name: ``str``

    :param ex_tenant_name: Project the token is scoped to.
    :type ex_tenant_name: ``str``

    :param ex_force_service_region: Region of the endpoint.
    :type ex_force_service_region: ``str``

    :param ex_identity: Identity connection shared with other service
                        connections. Created on demand when not given.
    :type ex_identity: :class:`OpenStackIdentity_3_0_Connection`
    """

    auth_url = None  # type: str
    auth_token = None  # type: str
    service_catalog = None
    service_type = None  # type: str
    service_name = None  # type: str
    service_region = None  # type: str
    accept_format = 'application/json'
    default_content_type = 'application/json'
    responseCls = OpenStackResponse

    def __init__(self, user_id, key, secure=True,
                 host=None, port=None, timeout=None, proxy_url=None,
                 ex_force_base_url=None,
                 ex_force_auth_url=None,
                 ex_domain_name='Default',
                 ex_tenant_name=None,
                 ex_force_service_region=None,
                 ex_identity=None):
        super(OpenStackBaseConnection, self).__init__(
            user_id, key, secure=secure, host=host, port=port,
            timeout=timeout, proxy_url=proxy_url)

        self.base_url = ex_force_base_url
        self._ex_force_auth_url = ex_force_auth_url
        self._ex_domain_name = ex_domain_name
        self._ex_tenant_name = ex_tenant_name
        self._ex_force_service_region = ex_force_service_region
        self._osa = ex_identity

        if not (ex_identity or self._get_auth_url()):
            raise OTCMachineError('OpenStack connection must have auth_url '
                                  'set')

    def _get_auth_url(self):
        return self._ex_force_auth_url or self.auth_url

    def get_auth_class(self):
        """
        :rtype: :class:`OpenStackIdentity_3_0_Connection`
        """
        if self._osa is None:
            self._osa = OpenStackIdentity_3_0_Connection(
                auth_url=self._get_auth_url(),
                user_id=self.user_id,
                key=self.key,
                tenant_name=self._ex_tenant_name,
                domain_name=self._ex_domain_name,
                timeout=self.timeout,
                proxy_url=self.proxy_url,
                parent_conn=self)

        return self._osa

    def request(self, action, params=None, data=None, headers=None,
                method='GET', stream=False):
        headers = dict(headers or {})

        if method.upper() in ('POST', 'PUT') and self.default_content_type:
            headers['Content-Type'] = self.default_content_type

        return super(OpenStackBaseConnection, self).request(
            action, params=params, data=data, headers=headers,
            method=method, stream=stream)

    def get_service_catalog(self):
        if self.service_catalog is None:
            self._populate_hosts_and_request_paths()

        return self.service_catalog

    def get_endpoint(self):
        """
        :return: URL of the public endpoint of :attr:`service_type` in the
                 configured region.
        :rtype: ``str``
        """
        region = self._ex_force_service_region or self.service_region
        endpoint = self.service_catalog.get_endpoint(
            service_type=self.service_type,
            name=self.service_name,
            region=region)

        if not endpoint.url:
            raise OTCMachineError('Endpoint of %s has no URL' %
                                  (self.service_type))

        return endpoint.url

    def add_default_headers(self, headers):
        headers['X-Auth-Token'] = self.auth_token
        headers['Accept'] = self.accept_format
        return headers

    def encode_data(self, data):
        if isinstance(data, (dict, list)):
            return json.dumps(data)
        return data

    def morph_action_hook(self, action):
        self._populate_hosts_and_request_paths()
        return super(OpenStackBaseConnection, self).morph_action_hook(action)

    def _set_up_connection_info(self, url):
        (host, port, secure, request_path) = self._tuple_from_url(url)

        if (self.connection is None or
                (host, port, secure) != (self.host, self.port, self.secure)):
            (self.host, self.port, self.secure) = (host, port, secure)
            self.connect()

        self.request_path = request_path

    def _populate_hosts_and_request_paths(self):
        """
        Authenticate (unless the shared token is still valid) and bind the
        connection to the endpoint of the service.
        """
        osa = self.get_auth_class()

        if not osa.is_token_valid():
            osa.authenticate()

        self.auth_token = osa.auth_token
        self.service_catalog = osa.get_service_catalog()

        self._set_up_connection_info(url=self.base_url or self.get_endpoint())
