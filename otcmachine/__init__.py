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
otcmachine provisions the cloud resources a docker machine host needs on
OpenTelekomCloud: VPCs, subnets, security groups, key pairs, floating IPs
and instances.

:var __version__: Current version of otcmachine
"""

import atexit
import codecs
import os

__all__ = [
    '__version__',
    'enable_debug'
]

__version__ = '0.1.0'

DEBUG_ENV_VARIABLE_NAME = 'OTCMACHINE_DEBUG'

# Can't be opened in append mode ("illegal seek")
UNSEEKABLE_PATHS = ['/dev/stderr', '/dev/stdout']


def enable_debug(fo):
    """
    Log every request and response of all the connections to ``fo``.

    :param fo: Where to write the log, only ``write`` and ``flush`` are used.
    :type fo: File like object
    """
    from otcmachine.common.base import Connection
    from otcmachine.utils.loggingconnection import LoggingConnection

    LoggingConnection.log = fo
    Connection.conn_class = LoggingConnection
    atexit.register(fo.close)


def _init_once():
    """
    Turn on debugging when the ``OTCMACHINE_DEBUG`` environment variable
    names a file to log to. Runs on import.
    """
    path = os.getenv(DEBUG_ENV_VARIABLE_NAME)
    if not path:
        return

    mode = 'w' if path in UNSEEKABLE_PATHS else 'a'
    enable_debug(codecs.open(path, mode, encoding='utf8'))


_init_once()
