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
Shared setup of the scenarios running against a live OpenTelekomCloud
project. Credentials are read from the ``OS_*`` environment variables.
"""

import os
import logging
import threading
import unittest

from otcmachine.common.exceptions import ResourceNotFoundError
from otcmachine.common.types import OTCMachineError
from otcmachine.services import Client, WaitResult
from otcmachine.services.base import REQUIRED_ENV_VARIABLES
from otcmachine.utils.misc import random_string
from otcmachine.utils.publickey import generate_key_pair

_logger = logging.getLogger(__name__)

DEFAULT_AVAILABILITY_ZONE = 'eu-de-03'
DEFAULT_FLAVOR = 's2.large.2'
DEFAULT_IMAGE = 'Standard_Debian_10_latest'
DEFAULT_DISK_SIZE = 12

REQUEST_TIMEOUT = 30

NAME_PREFIX = 'machine-it'


def check_env():
    missing = [name for name in REQUIRED_ENV_VARIABLES
               if not os.environ.get(name)]
    if missing:
        raise unittest.SkipTest('environment variables %s not set' %
                                (', '.join(missing)))


def generate_pair():
    """
    Generate a key pair locally, only the public part is uploaded.

    :rtype: :class:`otcmachine.utils.publickey.KeyPairMaterial`
    """
    return generate_key_pair()


def random_name(length=8, prefix=NAME_PREFIX + '-'):
    return random_string(length, prefix=prefix)


class ResourceNames(object):
    """
    Names of the resources the scenarios create. One set is shared by the
    whole run so the cleanup before each test finds what an earlier test
    left behind.
    """

    def __init__(self):
        self.vpc = random_name(prefix='vpc-')
        self.subnet = random_name(prefix='subnet-')
        self.security_group = random_name(prefix='sg-')
        self.key_pair = random_string(12, prefix='kp-')
        self.server = random_string(16, prefix='machine-')


RESOURCE_NAMES = ResourceNames()


def _delete_and_wait(resource, resource_id, delete, wait):
    """
    Delete a resource and wait until it is gone. Failures are logged and
    the teardown goes on.
    """
    try:
        delete(resource_id)
        result = wait(resource_id, None)
    except ResourceNotFoundError:
        _logger.debug('%s %s is already gone', resource, resource_id)
        return
    except OTCMachineError as e:
        _logger.error('Unable to delete %s %s: %s', resource, resource_id, e)
        return

    if result != WaitResult.NOT_FOUND:
        _logger.error('%s %s is still there: %s', resource, resource_id,
                      result)


def delete_instance(client, instance_id):
    _delete_and_wait('instance', instance_id, client.delete_instance,
                     client.wait_for_instance_status)


def delete_subnet(client, vpc_id, subnet_id):
    _delete_and_wait('subnet', subnet_id,
                     lambda subnet_id: client.delete_subnet(vpc_id,
                                                            subnet_id),
                     client.wait_for_subnet_status)


def delete_vpc(client, vpc_id):
    _delete_and_wait('VPC', vpc_id, client.delete_vpc,
                     client.wait_for_vpc_status)


def _find(resource, find, *args):
    try:
        return find(*args)
    except OTCMachineError as e:
        _logger.error('Unable to look up %s: %s', resource, e)
        return None


def _delete_key_pair(client, name):
    try:
        if client.find_key_pair(name) is not None:
            client.delete_key_pair(name)
    except OTCMachineError as e:
        _logger.error('Unable to delete key pair %s: %s', name, e)


def cleanup_resources(client, names):
    """
    Remove whatever an interrupted run left behind under ``names``. Errors
    are logged, they never stop the cleanup.

    The key pair is deleted from a background thread which is returned so
    the caller can join it.

    :rtype: :class:`threading.Thread`
    """
    instance_id = _find('instance', client.find_instance, names.server)
    if instance_id is not None:
        delete_instance(client, instance_id)

    thread = threading.Thread(target=_delete_key_pair,
                              args=(client, names.key_pair))
    thread.daemon = True
    thread.start()

    group_ids = _find('security groups', client.find_security_groups,
                      [names.security_group])
    for group_id in group_ids or []:
        try:
            client.delete_security_group(group_id)
        except OTCMachineError as e:
            _logger.error('Unable to delete security group %s: %s',
                          group_id, e)

    vpc_id = _find('VPC', client.find_vpc, names.vpc)
    if vpc_id is not None:
        subnet_id = _find('subnet', client.find_subnet, vpc_id, names.subnet)
        if subnet_id is not None:
            delete_subnet(client, vpc_id, subnet_id)
        delete_vpc(client, vpc_id)

    return thread


class IntegrationTestCase(unittest.TestCase):
    client = None
    names = RESOURCE_NAMES

    @classmethod
    def setUpClass(cls):
        check_env()
        cls.client = Client.from_env(timeout=REQUEST_TIMEOUT)
        cls.client.authenticate()
        cls.client.init_network()
        cls.client.init_compute()

    def setUp(self):
        thread = cleanup_resources(self.client, self.names)
        thread.join(60)

    def create_network(self):
        """
        Create a VPC with a subnet and wait for both to be usable.
        Deletion is registered as cleanup.

        :rtype: ``tuple`` of :class:`VPC` and :class:`Subnet`
        """
        vpc = self.client.create_vpc(self.names.vpc)
        self.addCleanup(delete_vpc, self.client, vpc.id)
        self.assertEqual(self.client.wait_for_vpc_status(vpc.id, 'OK'),
                         WaitResult.SUCCESS)

        subnet = self.client.create_subnet(vpc.id, self.names.subnet)
        self.addCleanup(delete_subnet, self.client, vpc.id, subnet.id)
        self.assertEqual(
            self.client.wait_for_subnet_status(subnet.id, 'ACTIVE'),
            WaitResult.SUCCESS)
        return vpc, subnet
