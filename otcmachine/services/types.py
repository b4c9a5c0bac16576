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
Value types and lifecycle states of the managed cloud resources.
"""

from otcmachine.common.types import Type
from otcmachine.utils.misc import ReprMixin

__all__ = [
    'ResourceState',
    'WaitResult',

    'VPC_STATE_MAP',
    'SUBNET_STATE_MAP',
    'INSTANCE_STATE_MAP',
    'INSTANCE_STATUS_RUNNING',
    'INSTANCE_STATUS_STOPPED',
    'SUBNET_STATUS_ACTIVE',
    'to_state',

    'DEFAULT_VPC_CIDR',
    'DEFAULT_SUBNET_CIDR',
    'DEFAULT_GATEWAY_IP',
    'DEFAULT_DNS_LIST',
    'DEFAULT_EXTERNAL_NETWORK',
    'DEFAULT_DISK_TYPE',

    'VPC',
    'Subnet',
    'PortRange',
    'SecurityGroup',
    'KeyPair',
    'Instance',
    'InstanceDetails',
    'InstanceOpts',
    'DiskOpts'
]

DEFAULT_VPC_CIDR = '192.168.0.0/16'
DEFAULT_SUBNET_CIDR = '192.168.0.0/24'
DEFAULT_GATEWAY_IP = '192.168.0.1'
DEFAULT_DNS_LIST = ['100.125.4.25', '8.8.8.8']
DEFAULT_EXTERNAL_NETWORK = 'admin_external_net'
DEFAULT_DISK_TYPE = 'SATA'

# Raw status strings as returned by the API
INSTANCE_STATUS_RUNNING = 'ACTIVE'
INSTANCE_STATUS_STOPPED = 'SHUTOFF'
SUBNET_STATUS_ACTIVE = 'ACTIVE'


class ResourceState(Type):
    """
    Standard lifecycle states of a remote resource.

    :cvar PENDING: Resource is being created.
    :cvar ACTIVE: Network resource is ready to be used.
    :cvar RUNNING: Instance is running.
    :cvar STOPPED: Instance is stopped. It can be started later on.
    :cvar REBOOTING: Instance is rebooting.
    :cvar DELETED: Instance is deleted but still listed.
    :cvar ERROR: Resource is in an error state.
    :cvar NOT_FOUND: Resource doesn't exist (any more).
    :cvar UNKNOWN: Status reported by the API is not known.
    """
    PENDING = 'pending'
    ACTIVE = 'active'
    RUNNING = 'running'
    STOPPED = 'stopped'
    REBOOTING = 'rebooting'
    DELETED = 'deleted'
    ERROR = 'error'
    NOT_FOUND = 'not_found'
    UNKNOWN = 'unknown'


class WaitResult(Type):
    """
    Outcome of a status wait.
    """
    SUCCESS = 'success'
    NOT_FOUND = 'not_found'
    TIMEOUT = 'timeout'
    CANCELLED = 'cancelled'


VPC_STATE_MAP = {
    'CREATING': ResourceState.PENDING,
    'OK': ResourceState.ACTIVE,
    'ERROR': ResourceState.ERROR
}

SUBNET_STATE_MAP = {
    'UNKNOWN': ResourceState.PENDING,
    'ACTIVE': ResourceState.ACTIVE,
    'ERROR': ResourceState.ERROR
}

INSTANCE_STATE_MAP = {
    'BUILD': ResourceState.PENDING,
    'ACTIVE': ResourceState.RUNNING,
    'SHUTOFF': ResourceState.STOPPED,
    'REBOOT': ResourceState.REBOOTING,
    'HARD_REBOOT': ResourceState.REBOOTING,
    'DELETED': ResourceState.DELETED,
    'ERROR': ResourceState.ERROR
}


def to_state(state_map, status):
    """
    Map a raw API status string to a :class:`ResourceState`.

    :rtype: :class:`ResourceState`
    """
    if status is None:
        return ResourceState.UNKNOWN
    return state_map.get(status.upper(), ResourceState.UNKNOWN)


class VPC(ReprMixin):
    _repr_attributes = ['id', 'name', 'cidr', 'status']

    def __init__(self, id, name, cidr=None, status=None):
        self.id = id
        self.name = name
        self.cidr = cidr
        self.status = status

    @property
    def state(self):
        return to_state(VPC_STATE_MAP, self.status)


class Subnet(ReprMixin):
    _repr_attributes = ['id', 'name', 'vpc_id', 'cidr', 'status']

    def __init__(self, id, name, vpc_id, cidr=None, gateway_ip=None,
                 status=None):
        self.id = id
        self.name = name
        self.vpc_id = vpc_id
        self.cidr = cidr
        self.gateway_ip = gateway_ip
        self.status = status

    @property
    def state(self):
        return to_state(SUBNET_STATE_MAP, self.status)


class PortRange(ReprMixin):
    """
    Inclusive range of TCP ports. A single port is expressed by omitting
    ``to_port``.
    """

    _repr_attributes = ['from_port', 'to_port']

    def __init__(self, from_port, to_port=None):
        if to_port is None:
            to_port = from_port

        if from_port > to_port:
            raise ValueError('from_port must not be greater than to_port')

        self.from_port = from_port
        self.to_port = to_port

    def __eq__(self, other):
        return (isinstance(other, PortRange) and
                self.from_port == other.from_port and
                self.to_port == other.to_port)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash((self.from_port, self.to_port))


class SecurityGroup(ReprMixin):
    _repr_attributes = ['id', 'name', 'rules']

    def __init__(self, id, name, rules=None):
        """
        :param rules: Port ranges open for TCP ingress traffic.
        :type rules: ``list`` of :class:`PortRange`
        """
        self.id = id
        self.name = name
        self.rules = rules or []


class KeyPair(ReprMixin):
    # private_key is left out on purpose
    _repr_attributes = ['name', 'fingerprint']

    def __init__(self, name, public_key, fingerprint=None, private_key=None):
        """
        :param private_key: Only set when the pair was generated by the
                            cloud. It is returned once, on creation.
        :type private_key: ``str``
        """
        self.name = name
        self.public_key = public_key
        self.fingerprint = fingerprint
        self.private_key = private_key


class Instance(ReprMixin):
    _repr_attributes = ['id', 'name']

    def __init__(self, id, name):
        self.id = id
        self.name = name


class InstanceDetails(ReprMixin):
    _repr_attributes = ['id', 'name', 'status', 'state']

    def __init__(self, id, name, status, addresses=None, extra=None):
        """
        :param addresses: Addresses keyed by network name, as reported by
                          the compute API.
        :type addresses: ``dict``
        """
        self.id = id
        self.name = name
        self.status = status
        self.addresses = addresses or {}
        self.extra = extra or {}

    @property
    def state(self):
        return to_state(INSTANCE_STATE_MAP, self.status)

    @property
    def ips(self):
        """
        All the addresses (fixed and floating) assigned to the instance.

        :rtype: ``list`` of ``str``
        """
        return [address['addr']
                for addresses in self.addresses.values()
                for address in addresses]


class InstanceOpts(ReprMixin):
    """
    Options of a new instance.

    :param name: Instance name.
    :type name: ``str``

    :param flavor_name: Name of the flavor, resolved to its ID on creation.
    :type flavor_name: ``str``

    :param availability_zone: Availability zone, e.g. ``eu-de-03``.
    :type availability_zone: ``str``

    :param networks: IDs of the subnets to attach. Defaults to the subnet
                     passed to ``create_instance``.
    :type networks: ``list`` of ``str``

    :param security_groups: Names of the security groups.
    :type security_groups: ``list`` of ``str``

    :param user_data: Cloud-init user data (plain text).
    :type user_data: ``str``

    :param metadata: Instance metadata.
    :type metadata: ``dict``
    """

    _repr_attributes = ['name', 'flavor_name', 'availability_zone']

    def __init__(self, name, flavor_name, availability_zone=None,
                 networks=None, security_groups=None, user_data=None,
                 metadata=None):
        self.name = name
        self.flavor_name = flavor_name
        self.availability_zone = availability_zone
        self.networks = networks or []
        self.security_groups = security_groups or []
        self.user_data = user_data
        self.metadata = metadata or {}


class DiskOpts(ReprMixin):
    """
    Root volume of a new instance, created from an image.
    """

    _repr_attributes = ['source_id', 'size', 'type']

    def __init__(self, source_id, size, type=DEFAULT_DISK_TYPE):
        self.source_id = source_id
        self.size = size
        self.type = type
