from __future__ import annotations

from todo_core.domain.tags import normalize_tags, tag_key


def test_variants_and_blanks_collapse_to_first_form() -> None:
    assert normalize_tags([" Tag ", "tag", "TAG", "", "  "]) == ("Tag",)


def test_first_seen_order_is_kept() -> None:
    assert normalize_tags(["work", "Home", "WORK", " urgent", "home "]) == ("work", "Home", "urgent")


def test_missing_tags_normalize_to_empty() -> None:
    assert normalize_tags(None) == ()
    assert normalize_tags([]) == ()


def test_tag_key_ignores_case_and_whitespace() -> None:
    assert tag_key("  Work ") == tag_key("WORK") == "work"
