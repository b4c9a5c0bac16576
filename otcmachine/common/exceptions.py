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
Errors raised for HTTP error responses, typed by status code.
"""

import time
from email.utils import parsedate_tz, mktime_tz

from otcmachine.common.types import OTCMachineError

__all__ = [
    'BaseHTTPError',
    'ResourceNotFoundError',
    'RateLimitReachedError',

    'exception_from_message'
]


class BaseHTTPError(OTCMachineError):
    """
    Error response of the API.

    :ivar code: HTTP status code.
    :ivar message: Status, reason and error text of the response.
    :ivar headers: Response headers (lower case names).
    """

    def __init__(self, code, message, headers=None):
        super(BaseHTTPError, self).__init__(message)
        self.code = code
        self.message = message
        self.headers = headers


class ResourceNotFoundError(BaseHTTPError):
    """
    404, the resource doesn't exist (any more). Waits treat it as the end
    of a resource's life.
    """
    code = 404

    def __init__(self, code=404, message='404 Resource not found',
                 headers=None):
        super(ResourceNotFoundError, self).__init__(code, message, headers)


class RateLimitReachedError(BaseHTTPError):
    """
    429, too many requests. :attr:`retry_after` holds the number of seconds
    to back off for.
    """
    code = 429

    def __init__(self, code=429, message='429 Rate limit exceeded',
                 headers=None):
        super(RateLimitReachedError, self).__init__(code, message, headers)
        self.retry_after = int((headers or {}).get('retry-after', 0))


_code_map = dict((cls.code, cls) for cls in
                 [ResourceNotFoundError, RateLimitReachedError])


def _retry_after_seconds(value):
    # Retry-After is either delta-seconds or a HTTP-date (RFC 7231)
    http_date = parsedate_tz(value)
    if http_date is None:
        return value
    return str(max(0, int(mktime_tz(http_date) - time.time())))


def exception_from_message(code, message, headers=None):
    """
    Build the error for a response with status ``code``.

    Usage::

        raise exception_from_message(code=self.status,
                                     message=self.parse_error(),
                                     headers=self.headers)

    :rtype: :class:`BaseHTTPError`
    """
    if headers and 'retry-after' in headers:
        headers = dict(headers)
        headers['retry-after'] = _retry_after_seconds(headers['retry-after'])

    cls = _code_map.get(code, BaseHTTPError)
    return cls(code=code, message=message, headers=headers)
