# -*- coding: utf-8 -
#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import os

from setuptools import setup, find_packages

from cgibridge import __version__


CLASSIFIERS = [
    'Development Status :: 4 - Beta',
    'Environment :: Other Environment',
    'Framework :: AsyncIO',
    'Intended Audience :: Developers',
    'License :: OSI Approved :: MIT License',
    'Operating System :: MacOS :: MacOS X',
    'Operating System :: POSIX',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Programming Language :: Python :: 3.10',
    'Programming Language :: Python :: 3.11',
    'Programming Language :: Python :: 3.12',
    'Programming Language :: Python :: 3.13',
    'Programming Language :: Python :: 3 :: Only',
    'Programming Language :: Python :: Implementation :: CPython',
    'Topic :: Internet',
    'Topic :: Utilities',
    'Topic :: Software Development :: Libraries :: Python Modules',
    'Topic :: Internet :: WWW/HTTP',
    'Topic :: Internet :: WWW/HTTP :: Dynamic Content :: CGI Tools/Libraries']

# read long description
with open(os.path.join(os.path.dirname(__file__), 'README.rst')) as f:
    long_description = f.read()

# read dev requirements
fname = os.path.join(os.path.dirname(__file__), 'requirements_test.txt')
with open(fname) as f:
    tests_require = [l.strip() for l in f.readlines() if l.strip()]


install_requires = [
    'packaging',
]

extras_require = {
    'test': tests_require,
    'gunicorn': ['gunicorn>=23.0.0'],
}

setup(
    name='cgibridge',
    version=__version__,

    description='Run CGI programs as HTTP handlers from asyncio servers',
    long_description=long_description,
    long_description_content_type='text/x-rst',
    license='MIT',

    python_requires='>=3.10',
    install_requires=install_requires,
    classifiers=CLASSIFIERS,
    zip_safe=False,
    packages=find_packages(exclude=['examples', 'tests']),
    include_package_data=True,

    entry_points="""
    [cgibridge.responders]
    batch=cgibridge.responders:BatchResponder
    streaming=cgibridge.responders:StreamingResponder
    """,
    extras_require=extras_require,
)
