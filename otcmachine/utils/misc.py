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

import random
import string

__all__ = [
    "find",
    "lowercase_keys",
    "random_string",
    "ReprMixin",
]

RANDOM_NAME_ALPHABET = string.ascii_lowercase + string.digits


def find(value, predicate):
    results = [x for x in value if predicate(x)]
    return results[0] if len(results) > 0 else None


def lowercase_keys(dictionary):
    return dict(((k.lower(), v) for k, v in dictionary.items()))


def random_string(length, prefix=''):
    """
    Return ``prefix`` followed by ``length`` random lowercase letters and
    digits. Used to build resource names which don't clash between runs.

    :param length: Number of random characters.
    :type length: ``int``

    :param prefix: Fixed prefix of the name.
    :type prefix: ``str``

    :rtype: ``str``
    """
    rand = random.SystemRandom()
    return prefix + ''.join(rand.choice(RANDOM_NAME_ALPHABET)
                            for _ in range(length))


class ReprMixin(object):
    """
    Mixin class which adds __repr__ and __str__ methods for the attributes
    specified on the class.
    """

    _repr_attributes = []  # type: list

    def __repr__(self):
        attributes = []
        for attribute in self._repr_attributes:
            value = getattr(self, attribute, None)
            attributes.append('%s=%s' % (attribute, value))

        values = (self.__class__.__name__, ', '.join(attributes))
        result = '<%s %s>' % values
        return result

    def __str__(self):
        return str(self.__repr__())
