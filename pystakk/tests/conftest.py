"""Shared fixtures."""

import pytest

from pystakk.graph import ChangeGraph, build_change_graph
from pystakk.tests.fakes import FakeForge, FakeJj


@pytest.fixture
def jj() -> FakeJj:
    return FakeJj()


@pytest.fixture
def forge() -> FakeForge:
    return FakeForge()


@pytest.fixture
def abc_jj(jj: FakeJj) -> FakeJj:
    """A(1 commit) <- B(2 commits) <- C(1 commit) on trunk."""
    jj.chain([("aaaa", ["A"]), ("bbb1", []), ("bbb2", ["B"]), ("cccc", ["C"])])
    return jj


@pytest.fixture
def abc_graph(abc_jj: FakeJj) -> ChangeGraph:
    return build_change_graph(abc_jj)
