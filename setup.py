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

import os
import re
import sys
import fnmatch

from setuptools import setup

# NOTE: Those functions are intentionally moved in-line to prevent setup.py
# depending on any otcmachine code which imports requests and cryptography.
# START: Taken From Twisted Python which licensed under MIT license
# https://github.com/powdahound/twisted/blob/master/twisted/python/dist.py
# https://github.com/powdahound/twisted/blob/master/LICENSE

# Names that are excluded from globbing results:
EXCLUDE_NAMES = ['{arch}', 'CVS', '.cvsignore', '_darcs',
                 'RCS', 'SCCS', '.svn']
EXCLUDE_PATTERNS = ['*.py[cdo]', '*.s[ol]', '.#*', '*~', '*.py']


def _filter_names(names):
    """
    Given a list of file names, return those names that should be copied.
    """
    names = [n for n in names
             if n not in EXCLUDE_NAMES]
    for pattern in EXCLUDE_PATTERNS:
        names = [n for n in names
                 if not fnmatch.fnmatch(n, pattern) and not n.endswith('.py')]
    return names


def get_packages(dname, pkgname=None, results=None, parent=None):
    """
    Get all packages which are under dname.
    """
    parent = parent or ""
    prefix = []
    if parent:
        prefix = [parent]
    bname = os.path.basename(dname)
    if results is None:
        results = []
    if pkgname is None:
        pkgname = []
    subfiles = os.listdir(dname)
    abssubfiles = [os.path.join(dname, x) for x in subfiles]

    if '__init__.py' in subfiles:
        results.append(prefix + pkgname + [bname])
        for subdir in filter(os.path.isdir, abssubfiles):
            get_packages(subdir, pkgname=pkgname + [bname],
                         results=results, parent=parent)
    res = ['.'.join(result) for result in results]
    return res


def get_data_files(dname, parent=None):
    """
    Get all the data files that should be included in this distutils Project.

    'dname' should be the path to the package that you're distributing.

    'parent' is necessary if you're distributing a subpackage. It ensures
    that the data files are generated correctly, only using relative paths.
    The default 'parent' is the current working directory.
    """
    parent = parent or "."
    result = []
    for directory, subdirectories, filenames in os.walk(dname):
        for exname in EXCLUDE_NAMES:
            if exname in subdirectories:
                subdirectories.remove(exname)
        for filename in _filter_names(filenames):
            file_path = os.path.join(directory, filename)
            if parent:
                file_path = file_path.replace(parent + os.sep, '')
            result.append(file_path)

    return result
# END: Taken from Twisted


SUPPORTED_VERSIONS = ['Python 3.6+']

INSTALL_REQUIREMENTS = [
    'requests>=2.5.0',
    'cryptography>=2.5',
]

TEST_REQUIREMENTS = [
    'requests_mock',
    'pytest',
]

if sys.version_info < (3, 6, 0):
    version = '.'.join([str(x) for x in sys.version_info[:3]])
    print('Version ' + version + ' is not supported. Supported versions '
          'are: %s.' % ', '.join(SUPPORTED_VERSIONS))
    sys.exit(1)


def read_version_string():
    version = None
    cwd = os.path.dirname(os.path.abspath(__file__))
    version_file = os.path.join(cwd, 'otcmachine/__init__.py')

    with open(version_file) as fp:
        content = fp.read()

    match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                      content, re.M)

    if match:
        version = match.group(1)
        return version

    raise Exception('Cannot find version in otcmachine/__init__.py')


setup(
    name='otcmachine',
    version=read_version_string(),
    description='Client for the OpenTelekomCloud network and compute APIs' +
                ' used to provision machines: VPCs, subnets, security' +
                ' groups, key pairs, floating IPs and instances.',
    long_description=open('README.rst').read(),
    install_requires=INSTALL_REQUIREMENTS,
    extras_require={
        'test': TEST_REQUIREMENTS,
    },
    python_requires=">=3.6, <4",
    packages=get_packages('otcmachine'),
    package_dir={
        'otcmachine': 'otcmachine',
    },
    package_data={
        'otcmachine': get_data_files('otcmachine', parent='otcmachine'),
    },
    license='Apache License (2.0)',
    zip_safe=False,
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Topic :: Software Development :: Libraries :: Python Modules',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: Implementation :: CPython',
    ]
)
