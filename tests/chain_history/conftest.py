"""
Shared pytest fixtures for all chain_history tests.

Provides fake nodes used across multiple test modules.
"""

from __future__ import annotations

import pytest

from tests.chain_history.helpers import FakeChain, step_schedule


@pytest.fixture
def fake_chain() -> FakeChain:
    """Empty chain with a constant pallet state and 100 blocks."""
    return FakeChain(head=100)


@pytest.fixture
def upgraded_chain() -> FakeChain:
    """
    Chain with one migration window.

    - Blocks 0..99: version 8
    - Blocks 100..105: version 8, migration running
    - Blocks 106..200: version 9
    """
    return FakeChain(
        head=200,
        schedule=step_schedule((0, 8, False), (100, 8, True), (106, 9, False)),
    )
