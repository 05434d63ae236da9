"""Unit tests for per-lineage locks."""

from __future__ import annotations

import pytest

from core.errors import ConductorLineageBusyError
from lineage.locks import LineageLocks


def test_second_holder_of_same_lineage_fails_fast() -> None:
    """A lineage already held should reject a second holder."""
    locks = LineageLocks()

    with locks.hold("db"):
        with pytest.raises(ConductorLineageBusyError, match="db"):
            with locks.hold("db"):
                pass


def test_different_lineages_do_not_block_each_other() -> None:
    """Locks should be independent per lineage."""
    locks = LineageLocks()

    with locks.hold("db"):
        with locks.hold("app-config"):
            held = True

    assert held


def test_lock_is_released_after_failure() -> None:
    """A failing block should release the lineage."""
    locks = LineageLocks()

    with pytest.raises(RuntimeError):
        with locks.hold("db"):
            raise RuntimeError("boom")

    with locks.hold("db"):
        reacquired = True

    assert reacquired
