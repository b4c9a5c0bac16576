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
Key pair, image, flavor and instance operations.
"""

import base64
import logging

from otcmachine.common.types import OTCMachineError
from otcmachine.services.types import (KeyPair, Instance, InstanceDetails,
                                       INSTANCE_STATE_MAP)
from otcmachine.utils.misc import find

__all__ = [
    'ComputeMixin'
]

_logger = logging.getLogger(__name__)


class ComputeMixin(object):
    """
    Compute operations of :class:`otcmachine.services.client.Client`.
    """

    # Key pairs

    def create_key_pair(self, name, public_key=''):
        """
        Create a key pair.

        When ``public_key`` is empty, the pair is generated by the cloud and
        the private key is returned once, in the result of this call. An
        imported public key never comes back with a private key.

        :param name: Name of the key pair.
        :type name: ``str``

        :param public_key: Public key in the OpenSSH format to import.
        :type public_key: ``str``

        :rtype: :class:`KeyPair`
        """
        keypair = {'name': name}
        if public_key:
            keypair['public_key'] = public_key

        response = self.compute.request('/os-keypairs', method='POST',
                                        data={'keypair': keypair})
        key_pair = self._to_key_pair(response.object['keypair'])
        if public_key:
            key_pair.private_key = None

        _logger.debug('Created key pair %s', name)
        return key_pair

    def find_key_pair(self, name):
        """
        :return: The key pair called ``name`` or ``None``.
        :rtype: :class:`KeyPair`
        """
        response = self.compute.request('/os-keypairs')
        for item in response.object['keypairs']:
            if item['keypair']['name'] == name:
                return self._to_key_pair(item['keypair'])
        return None

    def delete_key_pair(self, name):
        self.compute.request('/os-keypairs/%s' % (name), method='DELETE')
        _logger.debug('Deleted key pair %s', name)

    # Images and flavors

    def find_image(self, name):
        """
        :return: ID of the image called ``name`` or ``None``.
        :rtype: ``str``
        """
        response = self.image.request('/v2/images', params={'name': name})
        image = find(response.object['images'],
                     lambda image: image['name'] == name)
        return image['id'] if image else None

    def find_flavor(self, name):
        """
        :return: ID of the flavor called ``name`` or ``None``.
        :rtype: ``str``
        """
        response = self.compute.request('/flavors')
        flavor = find(response.object['flavors'],
                      lambda flavor: flavor['name'] == name)
        return flavor['id'] if flavor else None

    # Instances

    def create_instance(self, opts, subnet_id, key_pair_name, disk_opts):
        """
        Boot an instance from a new root volume.

        :param opts: Instance options.
        :type opts: :class:`InstanceOpts`

        :param subnet_id: Subnet the instance is attached to when
                          ``opts.networks`` is empty.
        :type subnet_id: ``str``

        :param key_pair_name: Name of the key pair injected into the instance.
        :type key_pair_name: ``str``

        :param disk_opts: Root volume options.
        :type disk_opts: :class:`DiskOpts`

        :rtype: :class:`Instance`
        """
        flavor_id = self.find_flavor(opts.flavor_name)
        if flavor_id is None:
            raise OTCMachineError('Flavor %s not found' % (opts.flavor_name))

        networks = opts.networks or [subnet_id]

        server = {
            'name': opts.name,
            'flavorRef': flavor_id,
            'imageRef': disk_opts.source_id,
            'key_name': key_pair_name,
            'networks': [{'uuid': network} for network in networks],
            'block_device_mapping_v2': [{
                'boot_index': 0,
                'uuid': disk_opts.source_id,
                'source_type': 'image',
                'destination_type': 'volume',
                'volume_size': disk_opts.size,
                'volume_type': disk_opts.type,
                'delete_on_termination': True
            }]
        }

        if opts.availability_zone:
            server['availability_zone'] = opts.availability_zone

        if opts.security_groups:
            server['security_groups'] = [{'name': name}
                                         for name in opts.security_groups]

        if opts.user_data:
            user_data = opts.user_data
            if not isinstance(user_data, bytes):
                user_data = user_data.encode('utf-8')
            server['user_data'] = base64.b64encode(user_data).decode('utf-8')

        if opts.metadata:
            server['metadata'] = opts.metadata

        response = self.compute.request('/servers', method='POST',
                                        data={'server': server})
        instance = Instance(id=response.object['server']['id'],
                            name=opts.name)
        _logger.debug('Created instance %s (%s)', instance.name, instance.id)
        return instance

    def get_instance_status(self, instance_id):
        """
        :rtype: :class:`InstanceDetails`
        """
        response = self.compute.request('/servers/%s' % (instance_id))
        return self._to_instance_details(response.object['server'])

    def get_instance_state(self, instance_id):
        """
        :rtype: :class:`ResourceState`
        """
        return self.get_instance_status(instance_id).state

    def wait_for_instance_status(self, instance_id, state, timeout=None):
        """
        Wait until the instance reaches ``state``.

        :rtype: :class:`WaitResult`
        """
        return self._wait_for_state('instance', instance_id,
                                    self.get_instance_state,
                                    INSTANCE_STATE_MAP, state,
                                    timeout=timeout)

    def find_instance(self, name):
        """
        :return: ID of the instance called ``name`` or ``None``.
        :rtype: ``str``
        """
        # The name filter of the API is a regular expression
        response = self.compute.request('/servers', params={'name': name})
        for server in response.object['servers']:
            if server['name'] == name:
                return server['id']
        return None

    def delete_instance(self, instance_id):
        self.compute.request('/servers/%s' % (instance_id), method='DELETE')
        _logger.debug('Deleted instance %s', instance_id)

    def start_instance(self, instance_id):
        self._instance_action(instance_id, {'os-start': None})

    def stop_instance(self, instance_id):
        self._instance_action(instance_id, {'os-stop': None})

    def restart_instance(self, instance_id):
        """
        Soft reboot of the instance.
        """
        self._instance_action(instance_id, {'reboot': {'type': 'SOFT'}})

    def _instance_action(self, instance_id, action):
        self.compute.request('/servers/%s/action' % (instance_id),
                             method='POST', data=action)
        _logger.debug('Requested %s of instance %s', list(action)[0],
                      instance_id)

    def _to_key_pair(self, obj):
        return KeyPair(name=obj['name'],
                       public_key=obj.get('public_key'),
                       fingerprint=obj.get('fingerprint'),
                       private_key=obj.get('private_key'))

    def _to_instance_details(self, obj):
        return InstanceDetails(id=obj['id'], name=obj['name'],
                               status=obj.get('status'),
                               addresses=obj.get('addresses'),
                               extra={'flavor': obj.get('flavor'),
                                      'key_name': obj.get('key_name'),
                                      'availability_zone': obj.get(
                                          'OS-EXT-AZ:availability_zone')})
