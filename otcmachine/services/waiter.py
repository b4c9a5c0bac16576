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
Polling primitive used to wait for remote resources to change their state.
"""

import logging
import time

from otcmachine.common.exceptions import ResourceNotFoundError
from otcmachine.services.types import WaitResult

__all__ = [
    'DEFAULT_WAIT_TIMEOUT',
    'DEFAULT_POLL_INTERVAL',
    'wait_for'
]

# Seconds
DEFAULT_WAIT_TIMEOUT = 300
DEFAULT_POLL_INTERVAL = 1

_logger = logging.getLogger(__name__)


def wait_for(condition, timeout=DEFAULT_WAIT_TIMEOUT,
             interval=DEFAULT_POLL_INTERVAL, cancel_event=None):
    """
    Call ``condition`` until it returns a truthy value.

    The condition is always evaluated at least once, even with a zero
    timeout. A :class:`ResourceNotFoundError` raised by the condition ends
    the wait, any other exception is propagated to the caller.

    :param condition: Callable without arguments.
    :type condition: ``callable``

    :param timeout: How many seconds to wait before giving up.
    :type timeout: ``int``

    :param interval: How many seconds to sleep between the checks.
    :type interval: ``int``

    :param cancel_event: Optional event, the wait is abandoned once it is set.
    :type cancel_event: :class:`threading.Event`

    :return: :class:`WaitResult` SUCCESS, NOT_FOUND, TIMEOUT or CANCELLED.
    :rtype: :class:`WaitResult`
    """
    deadline = time.monotonic() + timeout

    while True:
        if cancel_event is not None and cancel_event.is_set():
            return WaitResult.CANCELLED

        try:
            if condition():
                return WaitResult.SUCCESS
        except ResourceNotFoundError:
            return WaitResult.NOT_FOUND

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            _logger.debug('Condition not met within %s seconds', timeout)
            return WaitResult.TIMEOUT

        sleep_for = min(interval, remaining)
        if cancel_event is not None:
            if cancel_event.wait(sleep_for):
                return WaitResult.CANCELLED
        elif sleep_for > 0:
            time.sleep(sleep_for)
