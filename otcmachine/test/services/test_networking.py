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

import sys
import unittest

from otcmachine.common.exceptions import ResourceNotFoundError
from otcmachine.common.types import OTCMachineError
from otcmachine.services.types import (PortRange, ResourceState, WaitResult,
                                       SUBNET_STATUS_ACTIVE)
from otcmachine.test.services.test_client import (OTCClientTestCase,
                                                  OTCMockHttp, VPC_ID,
                                                  SUBNET_ID,
                                                  SECURITY_GROUP_ID,
                                                  FLOATING_IP)

VPC_NAME = 'machine-vpc'
SUBNET_NAME = 'machine-subnet'
SECURITY_GROUP_NAME = 'machine-sg'


class NetworkingTests(OTCClientTestCase):

    def setUp(self):
        super(NetworkingTests, self).setUp()
        self.client.init_network()

    def test_create_vpc(self):
        vpc = self.client.create_vpc(VPC_NAME)

        self.assertEqual(vpc.id, VPC_ID)
        self.assertEqual(vpc.name, VPC_NAME)
        self.assertEqual(vpc.state, ResourceState.PENDING)

        body = self.get_request_body('POST', '/v1/prj01/vpcs')
        self.assertEqual(body, {'vpc': {'name': VPC_NAME,
                                        'cidr': '192.168.0.0/16'}})

    def test_create_vpc_custom_cidr(self):
        self.client.create_vpc(VPC_NAME, cidr='10.10.0.0/16')
        body = self.get_request_body('POST', '/v1/prj01/vpcs')
        self.assertEqual(body['vpc']['cidr'], '10.10.0.0/16')

    def test_get_vpc_state(self):
        self.assertEqual(self.client.get_vpc_state(VPC_ID),
                         ResourceState.PENDING)
        self.assertEqual(self.client.get_vpc_state(VPC_ID),
                         ResourceState.ACTIVE)

    def test_find_vpc(self):
        self.assertEqual(self.client.find_vpc(VPC_NAME), VPC_ID)
        self.assertIsNone(self.client.find_vpc('missing-vpc'))

    def test_create_then_delete_vpc(self):
        vpc = self.client.create_vpc(VPC_NAME)
        self.client.delete_vpc(vpc.id)
        self.assertLastRequest('DELETE', '/v1/prj01/vpcs/%s' % (VPC_ID))

        self.assertIsNone(self.client.find_vpc(VPC_NAME))
        self.assertRaises(ResourceNotFoundError, self.client.get_vpc_state,
                          vpc.id)

    def test_wait_for_vpc_status(self):
        result = self.client.wait_for_vpc_status(VPC_ID, ResourceState.ACTIVE)
        self.assertEqual(result, WaitResult.SUCCESS)

    def test_wait_for_vpc_status_gone(self):
        self.client.delete_vpc(VPC_ID)
        result = self.client.wait_for_vpc_status(VPC_ID,
                                                 ResourceState.NOT_FOUND)
        self.assertEqual(result, WaitResult.NOT_FOUND)

    def test_wait_for_vpc_status_timeout(self):
        OTCMockHttp.state['vpc_statuses'] = ['CREATING'] * 5
        result = self.client.wait_for_vpc_status(VPC_ID, ResourceState.ACTIVE,
                                                 timeout=0)
        self.assertEqual(result, WaitResult.TIMEOUT)

    def test_wait_for_vpc_status_unknown_status_string(self):
        # ACTIVE is a subnet status, a VPC reports OK
        self.assertRaises(ValueError, self.client.wait_for_vpc_status,
                          VPC_ID, 'ACTIVE')
        self.assertEqual(self.client.wait_for_vpc_status(VPC_ID, 'ok'),
                         WaitResult.SUCCESS)

    def test_vpc_not_found_error_message(self):
        self.client.delete_vpc(VPC_ID)
        try:
            self.client.get_vpc_state(VPC_ID)
        except ResourceNotFoundError as e:
            self.assertEqual(e.code, 404)
            self.assertIn('the vpc does not exist', e.message)
        else:
            self.fail('Exception was not thrown')

    def test_subnet_lifecycle(self):
        subnet = self.client.create_subnet(VPC_ID, SUBNET_NAME)
        self.assertEqual(subnet.id, SUBNET_ID)
        self.assertEqual(subnet.vpc_id, VPC_ID)
        self.assertEqual(subnet.state, ResourceState.PENDING)

        result = self.client.wait_for_subnet_status(subnet.id,
                                                    SUBNET_STATUS_ACTIVE)
        self.assertEqual(result, WaitResult.SUCCESS)

        found = self.client.find_subnet(VPC_ID, SUBNET_NAME)
        self.assertEqual(found, subnet.id)

        self.client.delete_subnet(VPC_ID, found)
        self.assertLastRequest('DELETE', '/v1/prj01/vpcs/%s/subnets/%s' %
                               (VPC_ID, SUBNET_ID))

        result = self.client.wait_for_subnet_status(subnet.id, None)
        self.assertEqual(result, WaitResult.NOT_FOUND)
        self.assertIsNone(self.client.find_subnet(VPC_ID, SUBNET_NAME))

    def test_create_subnet_defaults(self):
        self.client.create_subnet(VPC_ID, SUBNET_NAME)

        body = self.get_request_body('POST', '/v1/prj01/subnets')
        self.assertEqual(body, {'subnet': {
            'name': SUBNET_NAME,
            'cidr': '192.168.0.0/24',
            'gateway_ip': '192.168.0.1',
            'vpc_id': VPC_ID,
            'dhcp_enable': True,
            'primary_dns': '100.125.4.25',
            'secondary_dns': '8.8.8.8'
        }})

    def test_create_subnet_single_dns(self):
        self.client.create_subnet(VPC_ID, SUBNET_NAME, cidr='10.0.1.0/24',
                                  gateway_ip='10.0.1.1',
                                  dns_list=['1.1.1.1'])

        body = self.get_request_body('POST', '/v1/prj01/subnets')['subnet']
        self.assertEqual(body['cidr'], '10.0.1.0/24')
        self.assertEqual(body['gateway_ip'], '10.0.1.1')
        self.assertEqual(body['primary_dns'], '1.1.1.1')
        self.assertNotIn('secondary_dns', body)

    def test_find_subnet_filters_by_vpc(self):
        self.client.find_subnet(VPC_ID, SUBNET_NAME)
        _, url, _ = OTCMockHttp.requests[-1]
        self.assertEqual(url, '/v1/prj01/subnets?vpc_id=%s' % (VPC_ID))

    def test_get_subnet_state(self):
        self.assertEqual(self.client.get_subnet_state(SUBNET_ID),
                         ResourceState.PENDING)
        self.assertEqual(self.client.get_subnet_state(SUBNET_ID),
                         ResourceState.ACTIVE)

    def test_create_security_group(self):
        group = self.client.create_security_group(SECURITY_GROUP_NAME,
                                                  PortRange(22),
                                                  PortRange(8000, 8080))
        self.assertEqual(group.id, SECURITY_GROUP_ID)
        self.assertEqual(group.name, SECURITY_GROUP_NAME)
        self.assertEqual(group.rules, [PortRange(22, 22),
                                       PortRange(8000, 8080)])

        rules = [body['security_group_rule']
                 for (method, url, body) in OTCMockHttp.requests
                 if url == '/v2.0/security-group-rules']
        self.assertEqual(len(rules), 2)
        self.assertEqual(rules[0], {
            'security_group_id': SECURITY_GROUP_ID,
            'direction': 'ingress',
            'ethertype': 'IPv4',
            'protocol': 'tcp',
            'port_range_min': 22,
            'port_range_max': 22,
            'remote_ip_prefix': '0.0.0.0/0'
        })
        self.assertEqual(rules[1]['port_range_min'], 8000)
        self.assertEqual(rules[1]['port_range_max'], 8080)

    def test_find_and_delete_security_group(self):
        group = self.client.create_security_group(SECURITY_GROUP_NAME,
                                                  PortRange(22))

        group_ids = self.client.find_security_groups([SECURITY_GROUP_NAME])
        self.assertEqual(group_ids, [group.id])

        group_ids = self.client.find_security_groups([SECURITY_GROUP_NAME,
                                                      'default'])
        self.assertEqual(sorted(group_ids), ['sg0001', 'sg0099'])

        self.client.delete_security_group(group.id)
        self.assertEqual(
            self.client.find_security_groups([SECURITY_GROUP_NAME]), [])

    def test_floating_ip_lifecycle(self):
        ip = self.client.create_floating_ip()
        self.assertEqual(ip, FLOATING_IP)

        body = self.get_request_body('POST', '/v2.0/floatingips')
        self.assertEqual(body, {'floatingip': {
            'floating_network_id': 'net0ext'}})

        self.assertEqual(self.client.find_floating_ip(ip), 'fip0001')

        self.client.delete_floating_ip(ip)
        self.assertLastRequest('DELETE', '/v2.0/floatingips/fip0001')
        self.assertIsNone(self.client.find_floating_ip(ip))

    def test_find_floating_ip_other_address(self):
        self.assertIsNone(self.client.find_floating_ip('80.158.1.11'))

    def test_delete_missing_floating_ip(self):
        self.assertRaises(ResourceNotFoundError,
                          self.client.delete_floating_ip, '80.158.1.11')

    def test_create_floating_ip_no_external_network(self):
        OTCMockHttp.type = 'NO_EXTERNAL'
        # identity is already authenticated, only the network call is typed
        self.assertRaisesRegex(OTCMachineError, 'admin_external_net',
                               self.client.create_floating_ip)


class FloatingIPBindTests(OTCClientTestCase):

    def setUp(self):
        super(FloatingIPBindTests, self).setUp()
        self.client.init_network()
        self.client.init_compute()

    def test_bind_and_unbind(self):
        self.assertFalse(self.client.instance_bound_to_ip('srv0001',
                                                          FLOATING_IP))

        self.client.bind_floating_ip(FLOATING_IP, 'srv0001')
        body = self.get_request_body('POST',
                                     '/v2.1/prj01/servers/srv0001/action')
        self.assertEqual(body, {'addFloatingIp': {'address': FLOATING_IP}})

        result = self.client.wait_for_instance_ip_bind('srv0001', FLOATING_IP,
                                                       True)
        self.assertEqual(result, WaitResult.SUCCESS)
        self.assertTrue(self.client.instance_bound_to_ip('srv0001',
                                                         FLOATING_IP))

        self.client.unbind_floating_ip(FLOATING_IP, 'srv0001')
        body = self.get_request_body('POST',
                                     '/v2.1/prj01/servers/srv0001/action')
        self.assertEqual(body, {'removeFloatingIp': {'address': FLOATING_IP}})

        result = self.client.wait_for_instance_ip_bind('srv0001', FLOATING_IP,
                                                       False)
        self.assertEqual(result, WaitResult.SUCCESS)

    def test_wait_for_bind_timeout(self):
        result = self.client.wait_for_instance_ip_bind('srv0001', FLOATING_IP,
                                                       True, timeout=0)
        self.assertEqual(result, WaitResult.TIMEOUT)

    def test_wait_for_bind_instance_gone(self):
        self.client.delete_instance('srv0001')
        result = self.client.wait_for_instance_ip_bind('srv0001', FLOATING_IP,
                                                       True)
        self.assertEqual(result, WaitResult.NOT_FOUND)


if __name__ == '__main__':
    sys.exit(unittest.main())
