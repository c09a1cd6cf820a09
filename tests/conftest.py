#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

"""Pytest configuration for watchserve tests."""

import os
import sys

import pytest

# Add the repository root to sys.path so the tests run against this
# checkout without installing it
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)


@pytest.fixture
def watched_file(tmp_path):
    path = tmp_path / "h.conf"
    path.write_text("A")
    return str(path)
