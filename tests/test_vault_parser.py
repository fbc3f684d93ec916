"""Tests for note metadata parsing."""

from vaultpack.vault.models import TagSource
from vaultpack.vault.parser import parse_note_text


def test_frontmatter_flow_list():
    parsed = parse_note_text("---\ntitle: X\ntags: [alpha, \"beta\"]\n---\nbody\n")
    assert parsed.frontmatter_tags == ["alpha", "beta"]


def test_frontmatter_scalar_stays_string():
    parsed = parse_note_text("---\ntags: project/work\n---\n")
    assert parsed.frontmatter_tags == "project/work"


def test_frontmatter_block_list():
    text = "---\ntags:\n  - one\n  - two\nstatus: done\n---\n# Title\n"
    parsed = parse_note_text(text)
    assert parsed.frontmatter_tags == ["one", "two"]
    assert [h.text for h in parsed.headings] == ["Title"]


def test_no_frontmatter():
    parsed = parse_note_text("just text\n---\n")
    assert parsed.frontmatter_tags is None


def test_unterminated_frontmatter_is_body():
    parsed = parse_note_text("---\ntags: a\n# Heading\n")
    assert parsed.frontmatter_tags is None
    assert [h.text for h in parsed.headings] == ["Heading"]


def test_heading_offsets_index_into_full_text():
    text = "---\ntags: [a]\n---\n# Top\nintro\n## Sub ##\n"
    parsed = parse_note_text(text)
    assert [(h.level, h.text) for h in parsed.headings] == [(1, "Top"), (2, "Sub")]
    for h in parsed.headings:
        assert text[h.offset : h.offset + h.level] == "#" * h.level


def test_inline_tags():
    parsed = parse_note_text("Some #idea and (#work/project), not a#tag or #123.\n")
    assert parsed.inline_tags == ["#idea", "#work/project"]


def test_hash_without_space_is_tag_not_heading():
    parsed = parse_note_text("#draft\n")
    assert parsed.headings == []
    assert parsed.inline_tags == ["#draft"]


def test_code_is_skipped():
    text = "```\n# not a heading #nottag\n```\nuse `#inline` but #real\n"
    parsed = parse_note_text(text)
    assert parsed.headings == []
    assert parsed.inline_tags == ["#real"]


def test_metadata_tags_carry_source():
    meta = parse_note_text("---\ntags: fm\n---\n#inl\n").to_metadata()
    assert [(t.name, t.source) for t in meta.tags] == [
        ("fm", TagSource.FRONTMATTER),
        ("#inl", TagSource.INLINE),
    ]
