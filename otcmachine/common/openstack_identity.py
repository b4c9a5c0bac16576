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
Keystone v3 password authentication and the service catalog of the token.
"""

import json
import datetime
import logging
from http import client as httplib

from otcmachine.common.base import ConnectionUserAndKey, JsonResponse
from otcmachine.common.types import (OTCMachineError, InvalidCredsError,
                                     MalformedResponseError)
from otcmachine.utils.misc import ReprMixin

__all__ = [
    'OpenStackIdentityEndpointType',
    'OpenStackServiceCatalog',
    'OpenStackServiceCatalogEntry',
    'OpenStackServiceCatalogEntryEndpoint',
    'OpenStackAuthResponse',
    'OpenStackIdentity_3_0_Connection',
    'parse_token_expiration'
]

# A token expiring within this many seconds is renewed before use
AUTH_TOKEN_EXPIRES_GRACE_SECONDS = 5

EXPIRES_AT_FORMATS = [
    '%Y-%m-%dT%H:%M:%S.%fZ',
    '%Y-%m-%dT%H:%M:%SZ',
]

_logger = logging.getLogger(__name__)


def parse_token_expiration(value):
    """
    Parse the ``expires_at`` timestamp of a token.

    :rtype: :class:`datetime.datetime` (UTC)
    """
    for fmt in EXPIRES_AT_FORMATS:
        try:
            parsed = datetime.datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=datetime.timezone.utc)

    raise ValueError('Unsupported token expiration format: %s' % (value))


class OpenStackIdentityEndpointType(object):
    EXTERNAL = 'external'
    INTERNAL = 'internal'
    ADMIN = 'admin'


# Keystone v3 interface name -> endpoint type
INTERFACE_TO_ENDPOINT_TYPE = {
    'public': OpenStackIdentityEndpointType.EXTERNAL,
    'internal': OpenStackIdentityEndpointType.INTERNAL,
    'admin': OpenStackIdentityEndpointType.ADMIN
}


class OpenStackServiceCatalogEntryEndpoint(ReprMixin):
    """
    URL of a service in one region for one interface.
    """

    _repr_attributes = ['region', 'url', 'endpoint_type']

    def __init__(self, region, url,
                 endpoint_type=OpenStackIdentityEndpointType.EXTERNAL):
        if endpoint_type not in INTERFACE_TO_ENDPOINT_TYPE.values():
            raise ValueError('Invalid type: %s' % (endpoint_type))

        self.region = region
        self.url = url
        self.endpoint_type = endpoint_type

    def __eq__(self, other):
        return (self.region, self.url, self.endpoint_type) == \
            (other.region, other.url, other.endpoint_type)

    def __ne__(self, other):
        return not self.__eq__(other)


class OpenStackServiceCatalogEntry(ReprMixin):
    """
    A service of the catalog with all of its endpoints.
    """

    _repr_attributes = ['service_type', 'service_name', 'endpoints']

    def __init__(self, service_type, endpoints=None, service_name=None):
        self.service_type = service_type
        self.service_name = service_name
        self.endpoints = sorted(endpoints or [],
                                key=lambda endpoint: endpoint.url or '')

    def __eq__(self, other):
        return (self.service_type, self.service_name, self.endpoints) == \
            (other.service_type, other.service_name, other.endpoints)

    def __ne__(self, other):
        return not self.__eq__(other)


class OpenStackServiceCatalog(object):
    """
    Service catalog of a Keystone v3 token.

    :param service_catalog: ``catalog`` list of the token.
    :type service_catalog: ``list`` of ``dict``
    """

    def __init__(self, service_catalog):
        entries = [self._to_entry(item) for item in service_catalog or []]
        self._entries = sorted(
            entries,
            key=lambda entry: (entry.service_type, entry.service_name or ''))

    def get_entries(self):
        """
        :rtype: ``list`` of :class:`OpenStackServiceCatalogEntry`
        """
        return self._entries

    def get_endpoint(self, service_type=None, name=None, region=None,
                     endpoint_type=OpenStackIdentityEndpointType.EXTERNAL):
        """
        Return the only endpoint matching all of the given criteria.

        :raises OTCMachineError: If nothing matches.
        :raises ValueError: If more than one endpoint matches.

        :rtype: :class:`OpenStackServiceCatalogEntryEndpoint`
        """
        endpoints = [
            endpoint
            for entry in self._entries
            if not service_type or entry.service_type == service_type
            if not name or entry.service_name == name
            for endpoint in entry.endpoints
            if not region or endpoint.region == region
            if not endpoint_type or endpoint.endpoint_type == endpoint_type
        ]

        if not endpoints:
            raise OTCMachineError('Could not find specified endpoint: %s' %
                                  (service_type))
        if len(endpoints) > 1:
            raise ValueError('Found more than 1 matching endpoint')
        return endpoints[0]

    def _to_entry(self, item):
        endpoints = []
        for endpoint in item['endpoints']:
            endpoint_type = INTERFACE_TO_ENDPOINT_TYPE.get(
                endpoint['interface'], endpoint['interface'])
            endpoints.append(OpenStackServiceCatalogEntryEndpoint(
                region=endpoint.get('region_id', endpoint.get('region')),
                url=endpoint['url'],
                endpoint_type=endpoint_type))

        return OpenStackServiceCatalogEntry(service_type=item['type'],
                                            service_name=item.get('name'),
                                            endpoints=endpoints)


class OpenStackAuthResponse(JsonResponse):
    """
    Token response. A 401 is left to the identity connection which turns
    it into :class:`InvalidCredsError`.
    """

    def success(self):
        return (super(OpenStackAuthResponse, self).success() or
                self.status == httplib.UNAUTHORIZED)

    def parse_body(self):
        content_type = self.headers.get('content-type', '')
        if content_type.split(';')[0].strip() != 'application/json':
            return self.body or None
        return super(OpenStackAuthResponse, self).parse_body() or None

    def parse_error(self):
        return '%s %s %s' % (self.status, self.error, self.body)


class OpenStackIdentity_3_0_Connection(ConnectionUserAndKey):
    """
    Keystone v3 connection authenticating with a password and a token
    scoped to a project. The token, its expiration and the catalog are
    cached on the connection.

    :param auth_url: Keystone endpoint, with or without the ``/v3`` suffix.
    :type auth_url: ``str``

    :param tenant_name: Project the token is scoped to.
    :type tenant_name: ``str``

    :param domain_name: Domain of the user and the project.
    :type domain_name: ``str``

    :param parent_conn: Service connection which created this one, its
                        transport class is used.
    :type parent_conn: :class:`otcmachine.common.base.Connection`
    """

    responseCls = OpenStackAuthResponse
    name = 'OpenStack Identity API v3.x'
    auth_version = '3.0'

    def __init__(self, auth_url, user_id, key, tenant_name=None,
                 domain_name='Default', timeout=None, proxy_url=None,
                 parent_conn=None):
        if not tenant_name or not domain_name:
            raise ValueError('Must provide tenant_name and domain_name '
                             'argument')

        super(OpenStackIdentity_3_0_Connection, self).__init__(
            user_id=user_id, key=key, url=auth_url, timeout=timeout,
            proxy_url=proxy_url)

        if parent_conn is not None:
            self.conn_class = parent_conn.conn_class

        self.parent_conn = parent_conn
        self.auth_url = auth_url
        self.tenant_name = tenant_name
        self.domain_name = domain_name

        self.urls = []
        self.auth_token = None
        self.auth_token_expires = None
        self.auth_user_info = None
        self.project_id = None

    def add_default_headers(self, headers):
        headers['Accept'] = 'application/json'
        headers['Content-Type'] = 'application/json; charset=UTF-8'
        return headers

    def encode_data(self, data):
        return json.dumps(data)

    def is_token_valid(self):
        """
        :return: ``True`` if a token is cached and doesn't expire within
                 :data:`AUTH_TOKEN_EXPIRES_GRACE_SECONDS`.
        :rtype: ``bool``
        """
        if not self.auth_token or not self.auth_token_expires:
            return False

        grace = datetime.timedelta(seconds=AUTH_TOKEN_EXPIRES_GRACE_SECONDS)
        now = datetime.datetime.now(datetime.timezone.utc)
        return now < self.auth_token_expires - grace

    def get_service_catalog(self):
        """
        :rtype: :class:`OpenStackServiceCatalog`
        """
        return OpenStackServiceCatalog(service_catalog=self.urls)

    def _auth_body(self):
        domain = {'name': self.domain_name}
        return {
            'auth': {
                'identity': {
                    'methods': ['password'],
                    'password': {
                        'user': {
                            'domain': domain,
                            'name': self.user_id,
                            'password': self.key
                        }
                    }
                },
                'scope': {
                    'project': {
                        'domain': domain,
                        'name': self.tenant_name
                    }
                }
            }
        }

    def authenticate(self, force=False):
        """
        Request a new token unless the cached one is still valid.

        :param force: Request a new token in any case.
        :type force: ``bool``

        :raises InvalidCredsError: If Keystone answers with 401.
        :raises MalformedResponseError: If the token response is incomplete.
        """
        if not force and self.is_token_valid():
            return self

        action = '/auth/tokens'
        if not self.request_path.endswith('/v3'):
            action = '/v3' + action

        _logger.debug('Requesting token for user %s (project %s)',
                      self.user_id, self.tenant_name)
        response = self.request(action, data=self._auth_body(),
                                method='POST')

        if response.status == httplib.UNAUTHORIZED:
            raise InvalidCredsError()

        try:
            token = response.object['token']
            self.auth_token = response.headers['x-subject-token']
            self.auth_token_expires = parse_token_expiration(
                token['expires_at'])
            self.project_id = token['project']['id']
        except (KeyError, TypeError, ValueError):
            raise MalformedResponseError('Auth JSON response is missing '
                                         'required elements',
                                         body=response.body)

        self.urls = token.get('catalog', [])
        self.auth_user_info = token.get('user')
        return self
