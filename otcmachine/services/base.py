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
Service connections and the authenticated client they hang off.
"""

import logging
import os

from otcmachine.common.openstack import OpenStackBaseConnection
from otcmachine.common.openstack_identity import \
    OpenStackIdentity_3_0_Connection
from otcmachine.common.types import OTCMachineError
from otcmachine.services.types import ResourceState
from otcmachine.services.waiter import (wait_for, DEFAULT_WAIT_TIMEOUT,
                                        DEFAULT_POLL_INTERVAL)

__all__ = [
    'OTCVpcConnection',
    'OTCNetworkConnection',
    'OTCComputeConnection',
    'OTCImageConnection',
    'BaseClient',
    'DEFAULT_REGION'
]

DEFAULT_REGION = 'eu-de'

ENV_AUTH_URL = 'OS_AUTH_URL'
ENV_USERNAME = 'OS_USERNAME'
ENV_PASSWORD = 'OS_PASSWORD'
ENV_DOMAIN_NAME = 'OS_DOMAIN_NAME'
ENV_PROJECT_NAME = 'OS_PROJECT_NAME'
ENV_REGION_NAME = 'OS_REGION_NAME'

REQUIRED_ENV_VARIABLES = [ENV_AUTH_URL, ENV_USERNAME, ENV_PASSWORD,
                          ENV_DOMAIN_NAME, ENV_PROJECT_NAME]

_logger = logging.getLogger(__name__)


class OTCVpcConnection(OpenStackBaseConnection):
    """
    VPC v1 API, the endpoint already contains the project ID.
    """
    service_type = 'vpc'


class OTCNetworkConnection(OpenStackBaseConnection):
    """
    Neutron v2.0 API.
    """
    service_type = 'network'


class OTCComputeConnection(OpenStackBaseConnection):
    """
    Nova v2.1 API, the endpoint already contains the project ID.
    """
    service_type = 'compute'


class OTCImageConnection(OpenStackBaseConnection):
    """
    Glance v2 API.
    """
    service_type = 'image'


class BaseClient(object):
    """
    Authenticated client. Service endpoints are bound on demand by
    :meth:`init_network` and :meth:`init_compute`, all of them share the
    same token.

    :param username: User name.
    :type username: ``str``

    :param password: User password.
    :type password: ``str``

    :param project_name: Project (tenant) the token is scoped to, e.g.
                         ``eu-de``.
    :type project_name: ``str``

    :param domain_name: Domain (account) name.
    :type domain_name: ``str``

    :param auth_url: Keystone endpoint, e.g.
                     ``https://iam.eu-de.otc.t-systems.com/v3``.
    :type auth_url: ``str``

    :param region: Region endpoints are selected from.
    :type region: ``str``
    """

    vpcConnectionCls = OTCVpcConnection
    networkConnectionCls = OTCNetworkConnection
    computeConnectionCls = OTCComputeConnection
    imageConnectionCls = OTCImageConnection

    # Seconds between two status checks while waiting
    poll_interval = DEFAULT_POLL_INTERVAL
    wait_timeout = DEFAULT_WAIT_TIMEOUT

    def __init__(self, username, password, project_name, domain_name,
                 auth_url, region=DEFAULT_REGION, secure=True, timeout=None,
                 proxy_url=None):
        self.username = username
        self.password = password
        self.project_name = project_name
        self.domain_name = domain_name
        self.auth_url = auth_url
        self.region = region or DEFAULT_REGION
        self.secure = secure
        self.timeout = timeout
        self.proxy_url = proxy_url

        self.identity = OpenStackIdentity_3_0_Connection(
            auth_url=auth_url,
            user_id=username,
            key=password,
            tenant_name=project_name,
            domain_name=domain_name,
            timeout=timeout,
            proxy_url=proxy_url)

        self.vpc_connection = None
        self.network_connection = None
        self.compute_connection = None
        self.image_connection = None

    @classmethod
    def from_env(cls, environ=None, **kwargs):
        """
        Create a client from the ``OS_*`` environment variables.

        :param environ: Mapping to read the variables from. Defaults to
                        ``os.environ``.
        :type environ: ``dict``
        """
        environ = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_ENV_VARIABLES
                   if not environ.get(name)]
        if missing:
            raise OTCMachineError('Missing environment variables: %s' %
                                  (', '.join(missing)))

        return cls(username=environ[ENV_USERNAME],
                   password=environ[ENV_PASSWORD],
                   project_name=environ[ENV_PROJECT_NAME],
                   domain_name=environ[ENV_DOMAIN_NAME],
                   auth_url=environ[ENV_AUTH_URL],
                   region=environ.get(ENV_REGION_NAME) or DEFAULT_REGION,
                   **kwargs)

    @property
    def project_id(self):
        return self.identity.project_id

    def authenticate(self, force=False):
        """
        Retrieve a token scoped to the project.

        :param force: Re-authenticate even if the cached token is valid.
        :type force: ``bool``
        """
        self.identity.authenticate(force=force)
        return self

    def init_network(self):
        """
        Bind the VPC and the Neutron endpoints.
        """
        self.authenticate()
        vpc_connection = self._new_connection(self.vpcConnectionCls)
        network_connection = self._new_connection(self.networkConnectionCls)
        self.vpc_connection = vpc_connection
        self.network_connection = network_connection
        return self

    def init_compute(self):
        """
        Bind the Nova and the Glance endpoints.
        """
        self.authenticate()
        compute_connection = self._new_connection(self.computeConnectionCls)
        image_connection = self._new_connection(self.imageConnectionCls)
        self.compute_connection = compute_connection
        self.image_connection = image_connection
        return self

    def _new_connection(self, connection_cls):
        connection = connection_cls(user_id=self.username,
                                    key=self.password,
                                    secure=self.secure,
                                    timeout=self.timeout,
                                    proxy_url=self.proxy_url,
                                    ex_force_auth_url=self.auth_url,
                                    ex_domain_name=self.domain_name,
                                    ex_tenant_name=self.project_name,
                                    ex_force_service_region=self.region,
                                    ex_identity=self.identity)
        # Fail early when the catalog has no such service
        connection.get_service_catalog()
        return connection

    def _get_connection(self, name, init_method):
        connection = getattr(self, name)
        if connection is None:
            raise OTCMachineError('Client is not initialized, call %s() '
                                  'first' % (init_method))
        return connection

    @property
    def vpc(self):
        return self._get_connection('vpc_connection', 'init_network')

    @property
    def network(self):
        return self._get_connection('network_connection', 'init_network')

    @property
    def compute(self):
        return self._get_connection('compute_connection', 'init_compute')

    @property
    def image(self):
        return self._get_connection('image_connection', 'init_compute')

    def _wait_for_state(self, resource, resource_id, get_state, state_map,
                        state, timeout=None):
        """
        Poll ``get_state(resource_id)`` until the resource reaches
        ``state``.

        ``state`` is either a :class:`ResourceState` or a raw status string
        of the API. :attr:`ResourceState.NOT_FOUND` and ``None`` wait until
        the resource is gone, which is reported as
        :attr:`WaitResult.NOT_FOUND`.
        Raises ``ValueError`` for a status string the resource does not
        know.

        :rtype: :class:`WaitResult`
        """
        if state is None or state == '':
            state = ResourceState.NOT_FOUND
        elif not isinstance(state, ResourceState):
            if state.upper() not in state_map:
                raise ValueError('Unknown %s status: %s' % (resource, state))
            state = state_map[state.upper()]

        timeout = self.wait_timeout if timeout is None else timeout

        def condition():
            current = get_state(resource_id)
            _logger.debug('%s %s is %s', resource, resource_id, current)
            return current == state

        _logger.debug('Waiting up to %s seconds for %s %s to become %s',
                      timeout, resource, resource_id, state)
        result = wait_for(condition, timeout=timeout,
                          interval=self.poll_interval)
        _logger.debug('Wait for %s %s finished: %s', resource, resource_id,
                      result)
        return result
