from __future__ import annotations

from docagent.preserve import (
    HUMAN_EDITED,
    PRESERVE,
    MarkerPair,
    extract_preserved_sections,
    validate_preserved_sections,
)

ORIGINAL = """# Nginx

<!-- HUMAN-EDITED START -->
KEEP ME
<!-- HUMAN-EDITED END -->

Generated text.

<!-- PRESERVE START -->
Support matrix
<!-- PRESERVE END -->

<!-- HUMAN-EDITED START -->
Second note
<!-- HUMAN-EDITED END -->
"""


def test_extract_numbers_sections_per_kind():
    sections = extract_preserved_sections(ORIGINAL)
    assert [section.key for section in sections] == ["HUMAN-EDITED-1", "HUMAN-EDITED-2", "PRESERVE-1"]
    assert sections[0].marker is HUMAN_EDITED
    assert sections[0].text == "<!-- HUMAN-EDITED START -->\nKEEP ME\n<!-- HUMAN-EDITED END -->"
    assert sections[2].marker is PRESERVE


def test_unterminated_span_is_ignored():
    content = "<!-- PRESERVE START -->\nno end marker"
    assert extract_preserved_sections(content) == []


def test_identical_document_has_no_warnings():
    assert validate_preserved_sections(ORIGINAL, ORIGINAL) == []


def test_preserved_spans_may_move():
    updated = "# New layout\n\n" + ORIGINAL.split("Generated text.")[1] + ORIGINAL.split("Generated text.")[0]
    assert validate_preserved_sections(ORIGINAL, updated) == []


def test_missing_span_warns_once():
    updated = ORIGINAL.replace("KEEP ME", "keep me")
    assert validate_preserved_sections(ORIGINAL, updated) == [
        "Human-edited section 'HUMAN-EDITED-1' was not preserved"
    ]


def test_whitespace_change_counts_as_not_preserved():
    updated = ORIGINAL.replace("Support matrix\n", "Support matrix \n")
    assert validate_preserved_sections(ORIGINAL, updated) == [
        "Human-edited section 'PRESERVE-1' was not preserved"
    ]


def test_every_dropped_span_is_reported():
    warnings = validate_preserved_sections(ORIGINAL, "# Rewritten\n")
    assert len(warnings) == 3


def test_custom_markers():
    marker = MarkerPair("KEEP", "[[keep]]", "[[/keep]]")
    original = "a [[keep]]x[[/keep]] b"
    assert validate_preserved_sections(original, "[[keep]]x[[/keep]]", [marker]) == []
    assert validate_preserved_sections(original, "nothing", [marker]) == [
        "Human-edited section 'KEEP-1' was not preserved"
    ]
