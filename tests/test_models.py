"""Tests for the pydantic models: StoreConfig and RecipientSet."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from passmanager.models import (
    IndexEntry,
    RecipientSet,
    ReplaceStrategy,
    StoreConfig,
    canonical_recipient,
)


class TestCanonicalRecipient:
    """Spelling variants of one principal compare equal."""

    def test_email_lowercased(self):
        assert canonical_recipient("  Alice@Example.COM ") == "alice@example.com"

    def test_hex_key_uppercased_without_prefix(self):
        assert canonical_recipient("0xdeadbeef") == "DEADBEEF"
        assert canonical_recipient("DeadBeefCafe1234") == "DEADBEEFCAFE1234"

    def test_other_names_kept(self):
        assert canonical_recipient(" Alice Smith ") == "Alice Smith"


class TestRecipientSet:
    """Order- and case-insensitive recipient sets."""

    def test_sorted_and_deduplicated(self):
        rs = RecipientSet.of("bob@example.com", "alice@example.com", "BOB@example.com")
        assert rs.members == ("alice@example.com", "bob@example.com")

    def test_reordering_keeps_digest(self):
        a = RecipientSet.of("A@x.org", "B@x.org")
        b = RecipientSet.of("b@x.org", "a@x.org")
        assert a == b
        assert a.digest == b.digest

    def test_different_sets_differ(self):
        assert RecipientSet.of("a@x.org").digest != RecipientSet.of("a@x.org", "b@x.org").digest

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            RecipientSet.of()
        with pytest.raises(ValidationError):
            RecipientSet.of("   ", "")

    def test_text_roundtrip(self):
        rs = RecipientSet.of("0xabcdef12", "carol@x.org")
        assert rs.to_text() == "ABCDEF12\ncarol@x.org\n"
        assert RecipientSet.from_text(rs.to_text()) == rs

    def test_from_text_skips_blank_lines(self):
        assert RecipientSet.from_text("\na@x.org\n\n").members == ("a@x.org",)

    def test_frozen(self):
        rs = RecipientSet.of("a@x.org")
        with pytest.raises(ValidationError):
            rs.members = ("b@x.org",)


class TestStoreConfig:
    """Defaults and validation of the runtime config."""

    def test_defaults(self):
        config = StoreConfig()
        assert config.pass_length == 25
        assert config.clip_time == 15
        assert config.umask == 0o077
        assert config.replace_strategy is ReplaceStrategy.COPY
        assert config.id_length == 16

    def test_store_dir_expanded(self):
        config = StoreConfig(store_dir="~/vault")
        assert config.store_dir == Path("~/vault").expanduser()

    def test_artifact_paths(self, tmp_path: Path):
        config = StoreConfig(store_dir=tmp_path)
        assert config.recipients_path == tmp_path / "recipients.gpg"
        assert config.index_path == tmp_path / "index.gpg"

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            StoreConfig(pass_length=0)
        with pytest.raises(ValidationError):
            StoreConfig(editor=())
        with pytest.raises(ValidationError):
            StoreConfig(replace_strategy="move")

    def test_frozen(self):
        config = StoreConfig()
        with pytest.raises(ValidationError):
            config.pass_length = 10


class TestIndexEntry:
    def test_fields(self):
        entry = IndexEntry("email/work", "abc")
        assert entry.path == "email/work"
        assert entry.id == "abc"
