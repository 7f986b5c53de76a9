"""Tests for the tree renderer."""

from __future__ import annotations

from passmanager.tree import render_tree


class TestRenderTree:
    def test_empty(self):
        assert render_tree([]) == []

    def test_flat(self):
        assert render_tree(["bank", "mail"]) == ["|-- bank", "|-- mail"]

    def test_shared_prefix_printed_once(self):
        assert render_tree(["email/home", "email/work"]) == [
            "|-- email",
            "|   |-- home",
            "|   |-- work",
        ]

    def test_deeper_segments_after_branch_are_rendered(self):
        """Once paths diverge, every deeper segment gets its own line."""
        assert render_tree(["a/b/c", "a/d/e"]) == [
            "|-- a",
            "|   |-- b",
            "|   |   |-- c",
            "|   |-- d",
            "|   |   |-- e",
        ]

    def test_path_longer_than_previous(self):
        assert render_tree(["a", "a/b/c"]) == [
            "|-- a",
            "|   |-- b",
            "|   |   |-- c",
        ]

    def test_mixed_depths(self):
        assert render_tree(["email/work", "web/github.com/alice", "web/gitlab.com"]) == [
            "|-- email",
            "|   |-- work",
            "|-- web",
            "|   |-- github.com",
            "|   |   |-- alice",
            "|   |-- gitlab.com",
        ]
