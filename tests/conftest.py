"""Pytest configuration and fixtures."""

import pytest


@pytest.fixture
def parse_elixir():
    """parse_elixir() from the tree-sitter front end; skips without the grammar."""
    pytest.importorskip("tree_sitter_elixir")
    from callcheck.elixir_frontend import parse_elixir

    return parse_elixir


@pytest.fixture
def detect_in_source():
    """detect_in_source() from the tree-sitter front end; skips without the grammar."""
    pytest.importorskip("tree_sitter_elixir")
    from callcheck.elixir_frontend import detect_in_source

    return detect_in_source
