"""Tests for snapshot digests and change detection."""

from detector import has_changed
from models.content import ContentSnapshot, compute_digest


class TestComputeDigest:
    def test_deterministic(self):
        text = "# Trends\n\n- item one\n- item two\n"
        assert compute_digest(text) == compute_digest(text)
        assert ContentSnapshot.from_text(text).digest == ContentSnapshot.from_text(text).digest

    def test_single_character_difference_changes_digest(self):
        assert compute_digest("hello world") != compute_digest("hello worle")
        assert compute_digest("trend") != compute_digest("trend ")

    def test_known_value(self):
        assert compute_digest("hello world") == (
            "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"
        )

    def test_utf8_text(self):
        digest = compute_digest("Тренды ИИ 🔥")
        assert len(digest) == 64
        assert digest == compute_digest("Тренды ИИ 🔥")


class TestHasChanged:
    def test_first_run_is_changed(self):
        snapshot = ContentSnapshot.from_text("hello world")
        assert len(snapshot.text) == 11
        assert has_changed(snapshot, None) is True
        assert has_changed(snapshot, "") is True

    def test_same_digest_is_unchanged(self):
        snapshot = ContentSnapshot.from_text("hello world")
        assert has_changed(snapshot, compute_digest("hello world")) is False

    def test_different_digest_is_changed(self):
        snapshot = ContentSnapshot.from_text("hello world!")
        assert has_changed(snapshot, compute_digest("hello world")) is True
