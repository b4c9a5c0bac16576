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
VPC, subnet, security group and floating IP operations.
"""

import logging

from otcmachine.common.exceptions import ResourceNotFoundError
from otcmachine.common.types import OTCMachineError
from otcmachine.services.types import (VPC, Subnet, SecurityGroup,
                                       VPC_STATE_MAP, SUBNET_STATE_MAP,
                                       DEFAULT_VPC_CIDR, DEFAULT_SUBNET_CIDR,
                                       DEFAULT_GATEWAY_IP, DEFAULT_DNS_LIST,
                                       DEFAULT_EXTERNAL_NETWORK)
from otcmachine.services.waiter import wait_for

__all__ = [
    'NetworkingMixin'
]

_logger = logging.getLogger(__name__)


class NetworkingMixin(object):
    """
    Network operations of :class:`otcmachine.services.client.Client`.

    VPCs and subnets are managed through the VPC v1 API, security groups and
    floating IPs through Neutron.
    """

    external_network_name = DEFAULT_EXTERNAL_NETWORK

    # VPCs

    def create_vpc(self, name, cidr=DEFAULT_VPC_CIDR):
        """
        Create a VPC.

        :param name: Name of the VPC.
        :type name: ``str``

        :param cidr: Address range of the VPC.
        :type cidr: ``str``

        :rtype: :class:`VPC`
        """
        data = {'vpc': {'name': name, 'cidr': cidr}}
        response = self.vpc.request('/vpcs', method='POST', data=data)
        vpc = self._to_vpc(response.object['vpc'])
        _logger.debug('Created VPC %s (%s)', vpc.name, vpc.id)
        return vpc

    def get_vpc(self, vpc_id):
        """
        :rtype: :class:`VPC`
        """
        response = self.vpc.request('/vpcs/%s' % (vpc_id))
        return self._to_vpc(response.object['vpc'])

    def get_vpc_state(self, vpc_id):
        """
        :rtype: :class:`ResourceState`
        """
        return self.get_vpc(vpc_id).state

    def list_vpcs(self):
        response = self.vpc.request('/vpcs')
        return [self._to_vpc(vpc) for vpc in response.object['vpcs']]

    def find_vpc(self, name):
        """
        Return the ID of the VPC called ``name`` or ``None``.

        :rtype: ``str``
        """
        for vpc in self.list_vpcs():
            if vpc.name == name:
                return vpc.id
        return None

    def delete_vpc(self, vpc_id):
        self.vpc.request('/vpcs/%s' % (vpc_id), method='DELETE')
        _logger.debug('Deleted VPC %s', vpc_id)

    def wait_for_vpc_status(self, vpc_id, state, timeout=None):
        """
        Wait until the VPC reaches ``state``. Use
        :attr:`ResourceState.NOT_FOUND` to wait for a deleted VPC to vanish.

        :rtype: :class:`WaitResult`
        """
        return self._wait_for_state('VPC', vpc_id, self.get_vpc_state,
                                    VPC_STATE_MAP, state, timeout=timeout)

    # Subnets

    def create_subnet(self, vpc_id, name, cidr=DEFAULT_SUBNET_CIDR,
                      gateway_ip=DEFAULT_GATEWAY_IP, dns_list=None):
        """
        Create a subnet with DHCP enabled inside of a VPC.

        :param vpc_id: ID of the parent VPC.
        :type vpc_id: ``str``

        :param name: Name of the subnet.
        :type name: ``str``

        :param cidr: Address range, must be part of the VPC range.
        :type cidr: ``str``

        :param gateway_ip: Gateway address, must be part of ``cidr``.
        :type gateway_ip: ``str``

        :param dns_list: Primary and (optional) secondary DNS server.
        :type dns_list: ``list`` of ``str``

        :rtype: :class:`Subnet`
        """
        dns_list = list(dns_list or DEFAULT_DNS_LIST)

        subnet = {
            'name': name,
            'cidr': cidr,
            'gateway_ip': gateway_ip,
            'vpc_id': vpc_id,
            'dhcp_enable': True,
            'primary_dns': dns_list[0]
        }
        if len(dns_list) > 1:
            subnet['secondary_dns'] = dns_list[1]

        response = self.vpc.request('/subnets', method='POST',
                                    data={'subnet': subnet})
        subnet = self._to_subnet(response.object['subnet'])
        _logger.debug('Created subnet %s (%s) in VPC %s', subnet.name,
                      subnet.id, vpc_id)
        return subnet

    def get_subnet(self, subnet_id):
        """
        :rtype: :class:`Subnet`
        """
        response = self.vpc.request('/subnets/%s' % (subnet_id))
        return self._to_subnet(response.object['subnet'])

    def get_subnet_state(self, subnet_id):
        """
        :rtype: :class:`ResourceState`
        """
        return self.get_subnet(subnet_id).state

    def find_subnet(self, vpc_id, name):
        """
        Return the ID of the subnet called ``name`` in the VPC or ``None``.

        :rtype: ``str``
        """
        response = self.vpc.request('/subnets', params={'vpc_id': vpc_id})
        for subnet in response.object['subnets']:
            if subnet['name'] == name and subnet['vpc_id'] == vpc_id:
                return subnet['id']
        return None

    def delete_subnet(self, vpc_id, subnet_id):
        self.vpc.request('/vpcs/%s/subnets/%s' % (vpc_id, subnet_id),
                         method='DELETE')
        _logger.debug('Deleted subnet %s', subnet_id)

    def wait_for_subnet_status(self, subnet_id, state, timeout=None):
        """
        Wait until the subnet reaches ``state``.

        :rtype: :class:`WaitResult`
        """
        return self._wait_for_state('subnet', subnet_id,
                                    self.get_subnet_state, SUBNET_STATE_MAP,
                                    state, timeout=timeout)

    # Security groups

    def create_security_group(self, name, *port_ranges):
        """
        Create a security group allowing incoming TCP traffic from anywhere
        to each of the port ranges.

        :param name: Name of the group.
        :type name: ``str``

        :param port_ranges: Port ranges to open.
        :type port_ranges: :class:`PortRange`

        :rtype: :class:`SecurityGroup`
        """
        data = {'security_group': {'name': name}}
        response = self.network.request('/v2.0/security-groups',
                                        method='POST', data=data)
        group = response.object['security_group']

        for port_range in port_ranges:
            rule = {
                'security_group_id': group['id'],
                'direction': 'ingress',
                'ethertype': 'IPv4',
                'protocol': 'tcp',
                'port_range_min': port_range.from_port,
                'port_range_max': port_range.to_port,
                'remote_ip_prefix': '0.0.0.0/0'
            }
            self.network.request('/v2.0/security-group-rules', method='POST',
                                 data={'security_group_rule': rule})

        _logger.debug('Created security group %s (%s)', name, group['id'])
        return SecurityGroup(id=group['id'], name=group['name'],
                             rules=list(port_ranges))

    def find_security_groups(self, names):
        """
        Return the IDs of the security groups with one of the given names.

        :rtype: ``list`` of ``str``
        """
        response = self.network.request('/v2.0/security-groups')
        return [group['id'] for group in response.object['security_groups']
                if group['name'] in names]

    def delete_security_group(self, group_id):
        self.network.request('/v2.0/security-groups/%s' % (group_id),
                             method='DELETE')
        _logger.debug('Deleted security group %s', group_id)

    # Floating IPs

    def _get_external_network_id(self):
        response = self.network.request(
            '/v2.0/networks', params={'name': self.external_network_name})
        networks = [network for network in response.object['networks']
                    if network['name'] == self.external_network_name]
        if not networks:
            raise OTCMachineError('External network %s not found' %
                                  (self.external_network_name))
        return networks[0]['id']

    def create_floating_ip(self):
        """
        Allocate a new floating IP on the external network.

        :return: The allocated address.
        :rtype: ``str``
        """
        data = {
            'floatingip': {
                'floating_network_id': self._get_external_network_id()
            }
        }
        response = self.network.request('/v2.0/floatingips', method='POST',
                                        data=data)
        ip = response.object['floatingip']['floating_ip_address']
        _logger.debug('Created floating IP %s', ip)
        return ip

    def find_floating_ip(self, ip):
        """
        Return the ID of the floating IP with address ``ip`` or ``None``.

        :rtype: ``str``
        """
        response = self.network.request('/v2.0/floatingips',
                                        params={'floating_ip_address': ip})
        for floating_ip in response.object['floatingips']:
            if floating_ip['floating_ip_address'] == ip:
                return floating_ip['id']
        return None

    def delete_floating_ip(self, ip):
        """
        Release the floating IP with address ``ip``.

        :raises ResourceNotFoundError: If there is no such floating IP.
        """
        floating_ip_id = self.find_floating_ip(ip)
        if floating_ip_id is None:
            raise ResourceNotFoundError(
                message='404 Floating IP %s not found' % (ip))

        self.network.request('/v2.0/floatingips/%s' % (floating_ip_id),
                             method='DELETE')
        _logger.debug('Deleted floating IP %s', ip)

    def bind_floating_ip(self, ip, instance_id):
        """
        Associate the floating IP with the instance.
        """
        data = {'addFloatingIp': {'address': ip}}
        self.compute.request('/servers/%s/action' % (instance_id),
                             method='POST', data=data)
        _logger.debug('Bound floating IP %s to instance %s', ip, instance_id)

    def unbind_floating_ip(self, ip, instance_id):
        """
        Disassociate the floating IP from the instance.
        """
        data = {'removeFloatingIp': {'address': ip}}
        self.compute.request('/servers/%s/action' % (instance_id),
                             method='POST', data=data)
        _logger.debug('Unbound floating IP %s from instance %s', ip,
                      instance_id)

    def instance_bound_to_ip(self, instance_id, ip):
        """
        Check if the instance has the address ``ip`` assigned.

        :rtype: ``bool``
        """
        return ip in self.get_instance_status(instance_id).ips

    def wait_for_instance_ip_bind(self, instance_id, ip, bind, timeout=None):
        """
        Wait until the floating IP is bound to the instance (``bind`` is
        ``True``) or no longer bound to it (``bind`` is ``False``).

        :rtype: :class:`WaitResult`
        """
        timeout = self.wait_timeout if timeout is None else timeout

        def condition():
            return self.instance_bound_to_ip(instance_id, ip) == bind

        result = wait_for(condition, timeout=timeout,
                          interval=self.poll_interval)
        _logger.debug('Wait for IP %s %s instance %s finished: %s', ip,
                      'bound to' if bind else 'unbound from', instance_id,
                      result)
        return result

    def _to_vpc(self, obj):
        return VPC(id=obj['id'], name=obj['name'], cidr=obj.get('cidr'),
                   status=obj.get('status'))

    def _to_subnet(self, obj):
        return Subnet(id=obj['id'], name=obj['name'], vpc_id=obj['vpc_id'],
                      cidr=obj.get('cidr'), gateway_ip=obj.get('gateway_ip'),
                      status=obj.get('status'))
