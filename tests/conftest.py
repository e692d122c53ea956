#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""Pytest configuration for cgibridge tests."""

import os
import sys

# Add the project root to sys.path so test support modules can be imported
# as 'tests.support'
tests_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if tests_dir not in sys.path:
    sys.path.insert(0, tests_dir)
