import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.insert(0, os.path.dirname(__file__))

from repo_factory import make_repo


@pytest.fixture
def servers_repo(tmp_path):
    """A fake modelcontextprotocol/servers checkout"""
    return make_repo(tmp_path)
