"""Shared pytest fixtures."""

import pytest

from gif_fix.utils.looper import Looper


@pytest.fixture
def looper():
    with Looper("test-decoder-looper") as lp:
        yield lp
