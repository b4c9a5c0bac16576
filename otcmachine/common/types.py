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

from enum import Enum
from typing import Optional

__all__ = [
    "Type",
    "OTCMachineError",
    "MalformedResponseError",
    "ProviderError",
    "InvalidCredsError",
]


class Type(str, Enum):
    """
    String valued enumeration. Members compare equal to their value.
    """

    @classmethod
    def tostring(cls, value):
        # type: (Enum) -> str
        """
        :return: Upper case value of the member, e.g. ``NOT_FOUND``.
        :rtype: ``str``
        """
        return str(value.value).upper()

    @classmethod
    def fromstring(cls, value):
        # type: (str) -> Optional[Type]
        """
        :return: Member called ``value`` (case insensitive) or ``None``.
        """
        return cls.__members__.get(value.upper())

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return self.value


class OTCMachineError(Exception):
    """
    Base class of all the errors raised by otcmachine.
    """

    def __init__(self, value):
        # type: (str) -> None
        super(OTCMachineError, self).__init__(value)
        self.value = value

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return '<%s %r>' % (self.__class__.__name__, self.value)


class MalformedResponseError(OTCMachineError):
    """
    The API answered with a body which can't be parsed, e.g. a HTML error
    page from a proxy instead of JSON.
    """

    def __init__(self, value, body=None):
        # type: (str, Optional[str]) -> None
        super(MalformedResponseError, self).__init__(value)
        self.body = body

    def __repr__(self):
        return '<%s %r>: %r' % (self.__class__.__name__, self.value,
                                self.body)


class ProviderError(OTCMachineError):
    """
    Error response of the API which is handled before it is turned into a
    :class:`otcmachine.common.exceptions.BaseHTTPError`.
    """

    def __init__(self, value, http_code):
        # type: (str, int) -> None
        super(ProviderError, self).__init__(value)
        self.http_code = http_code


class InvalidCredsError(ProviderError):
    """Keystone rejected the user name, password or scope."""

    def __init__(self, value='Invalid credentials'):
        # type: (str) -> None
        super(InvalidCredsError, self).__init__(value, http_code=401)
