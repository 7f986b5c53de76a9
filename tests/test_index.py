"""Tests for the encrypted path <-> ID index."""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from passmanager.atomic import ArtifactPipeline, AtomicWriter
from passmanager.errors import CorruptionError, DuplicateEntryError, PreconditionError
from passmanager.index import EncryptedIndex, format_index, parse_index, validate_path
from passmanager.models import IndexEntry, RecipientSet
from passmanager.tree import render_tree

from conftest import ALICE

RECIPIENTS = RecipientSet.of(ALICE)


@pytest.fixture
def pipeline(gateway, registry) -> ArtifactPipeline:
    return ArtifactPipeline(gateway, AtomicWriter(registry))


@pytest.fixture
def index(tmp_path: Path, pipeline) -> EncryptedIndex:
    return EncryptedIndex(tmp_path / "index.gpg", pipeline)


def _write_raw(index: EncryptedIndex, text: str) -> None:
    index.pipeline.persist(index.index_path, text.encode("utf-8"), RECIPIENTS)


class TestFormat:
    def test_parse_and_format(self):
        entries = [IndexEntry("email/work", "a1"), IndexEntry("bank", "b2")]
        assert parse_index(format_index(entries)) == entries

    def test_parse_skips_empty_lines(self):
        assert parse_index(b"a\tx\n\nb\ty\n") == [IndexEntry("a", "x"), IndexEntry("b", "y")]

    def test_malformed_line_is_corruption(self):
        with pytest.raises(CorruptionError):
            parse_index(b"a\tx\nno-tab-here\n")

    def test_undecodable_index_is_corruption(self):
        with pytest.raises(CorruptionError, match="not valid UTF-8"):
            parse_index(b"caf\xe9\tabc\n")

    def test_validate_path(self):
        assert validate_path("a/b c") == "a/b c"
        for bad in ("", "  ", "a\tb", "a\nb"):
            with pytest.raises(PreconditionError):
                validate_path(bad)


class TestEmptyIndex:
    """No index artifact means zero secrets."""

    def test_lookups_none(self, index):
        assert not index.exists()
        assert index.lookup_by_path("a/b") is None
        assert index.lookup_by_id("abc") is None
        assert index.paths() == []
        assert index.find(["a"]) == []

    def test_remove_requires_index(self, index):
        with pytest.raises(PreconditionError):
            index.remove("abc", RECIPIENTS)


class TestInsertLookup:
    def test_email_scenario(self, index):
        index.insert("email/work", "x1", RECIPIENTS)
        index.insert("email/home", "x2", RECIPIENTS)

        assert index.lookup_by_path("email/work") == "x1"
        assert index.lookup_by_id("x2") == "email/home"
        assert render_tree(index.paths()) == ["|-- email", "|   |-- home", "|   |-- work"]

        with pytest.raises(DuplicateEntryError):
            index.insert("email/work", "x3", RECIPIENTS)

    def test_duplicate_id_rejected(self, index):
        index.insert("a", "x1", RECIPIENTS)
        with pytest.raises(DuplicateEntryError):
            index.insert("b", "x1", RECIPIENTS)
        assert index.paths() == ["a"]

    def test_index_is_encrypted(self, index):
        index.insert("email/work", "x1", RECIPIENTS)
        assert b"email/work" not in index.index_path.read_bytes()

    def test_remove(self, index):
        index.insert("a", "x1", RECIPIENTS)
        index.insert("b", "x2", RECIPIENTS)
        index.remove("x1", RECIPIENTS)
        assert index.lookup_by_id("x1") is None
        assert index.lookup_by_path("a") is None
        assert index.lookup_by_path("b") == "x2"

    def test_remove_unknown_id_is_silent(self, index):
        index.insert("a", "x1", RECIPIENTS)
        index.remove("nope", RECIPIENTS)
        assert index.paths() == ["a"]

    def test_path_with_spaces(self, index):
        index.insert("bank/my account", "x1", RECIPIENTS)
        assert index.lookup_by_path("bank/my account") == "x1"


class TestLiteralMatching:
    """Regex metacharacters in paths are plain characters."""

    @pytest.mark.parametrize("path", ["a.b", "a*", "[x]", "c++", "(tmp)", "a|b", "^$"])
    def test_exact_lookup(self, index, path):
        index.insert(path, "x1", RECIPIENTS)
        index.insert("other", "x2", RECIPIENTS)
        assert index.lookup_by_path(path) == "x1"

    def test_dot_does_not_match_any_char(self, index):
        index.insert("axb", "x1", RECIPIENTS)
        assert index.lookup_by_path("a.b") is None
        index.insert("a.b", "x2", RECIPIENTS)
        assert index.lookup_by_path("a.b") == "x2"

    def test_find_is_literal(self, index):
        for n, path in enumerate(["web/a.com", "web/axcom", "mail/c++"]):
            index.insert(path, f"x{n}", RECIPIENTS)
        assert index.find([".com"]) == ["web/a.com"]
        assert index.find(["+", "xc"]) == ["mail/c++", "web/axcom"]
        assert index.find([""]) == []


class TestCorruption:
    def test_duplicate_path_detected(self, index):
        _write_raw(index, "a\tx1\na\tx2\n")
        with pytest.raises(CorruptionError):
            index.lookup_by_path("a")

    def test_duplicate_id_detected(self, index):
        _write_raw(index, "a\tx1\nb\tx1\n")
        with pytest.raises(CorruptionError):
            index.lookup_by_id("x1")


class TestBijection:
    """Random insert/remove sequences keep paths and IDs one-to-one."""

    def test_random_sequence(self, index):
        rng = random.Random(1234)
        model: dict[str, str] = {}
        for step in range(60):
            if model and rng.random() < 0.4:
                path = rng.choice(sorted(model))
                index.remove(model.pop(path), RECIPIENTS)
            else:
                path = f"dir{rng.randint(0, 3)}/item{rng.randint(0, 9)}"
                record_id = f"id{step}"
                if path in model:
                    with pytest.raises(DuplicateEntryError):
                        index.insert(path, record_id, RECIPIENTS)
                    continue
                index.insert(path, record_id, RECIPIENTS)
                model[path] = record_id

            entries = index.entries()
            assert len({e.path for e in entries}) == len(entries)
            assert len({e.id for e in entries}) == len(entries)
            assert dict(entries) == model
            for path, record_id in model.items():
                assert index.lookup_by_path(path) == record_id
                assert index.lookup_by_id(record_id) == path
