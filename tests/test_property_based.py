from __future__ import annotations

import re
import string

from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st
from jirapub.escape import escape_entities
from jirapub.formatter import format_markup
from jirapub.models import ParserState
from jirapub.parser import parse_line

# Letters that cannot form markup: no bullets, brackets, braces, emphasis or "h" headings.
plain_alphabet = string.ascii_uppercase + string.digits + ".,;:!?<>&\"'/()=+#%"
plain_line = st.text(alphabet=plain_alphabet, max_size=40)

KNOWN_TAG_PATTERN = re.compile(r"</?(?:ul|li|b|i|code|h[1-6]|br|pre|div|a)(?: [^<>]*)?>")


@given(st.lists(plain_line, min_size=1, max_size=10))
def test_text_without_markup_is_only_escaped(lines: list[str]):
    document = "\n".join(lines)

    expected = "".join(f"{escape_entities(line)}<br>\n" for line in lines)
    assert format_markup(document) == expected


@given(st.text(max_size=300))
def test_output_contains_only_generated_tags(document: str):
    html = format_markup(document)

    remainder = KNOWN_TAG_PATTERN.sub("", html)
    assert "<" not in remainder
    assert ">" not in remainder


@given(st.text(max_size=200))
def test_format_markup_is_deterministic(document: str):
    assert format_markup(document) == format_markup(document)


@given(st.text(alphabet=st.characters(exclude_characters="\r\n"), max_size=80))
def test_parse_line_resets_heading_state(line: str):
    _, state = parse_line(line, ParserState(heading_tag="h1"))

    if state.heading_tag is not None:
        assert re.match(r"h[1-6]\.", line)


@given(st.text())
@settings(suppress_health_check=[HealthCheck.filter_too_much])
def test_escaping_twice_double_encodes(text: str):
    assume(any(character in text for character in "&<>\"'"))

    assert escape_entities(escape_entities(text)) != escape_entities(text)


@given(st.lists(st.text(alphabet=string.ascii_lowercase, min_size=1, max_size=10), min_size=1))
def test_consecutive_bullets_open_one_list(items: list[str]):
    document = "\n".join(f"* {item}" for item in items)

    html = format_markup(document)

    assert html.count("<ul>") == 1
    assert html.count("</ul>") == 1
    assert html.count("<li>") == len(items)
