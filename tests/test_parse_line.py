from __future__ import annotations

import pytest

from jirapub.config import PublisherConfig
from jirapub.models import ParserState, RewriteRule
from jirapub.parser import can_toggle_emphasis, parse_line


def _html(line: str, state: ParserState | None = None) -> str:
    html, _ = parse_line(line, state)
    return html


@pytest.mark.parametrize(
    ("preceding", "expected"),
    [(None, True), (" ", True), ("(", True), ("2", True), ("a", False), ("Z", False)],
)
def test_can_toggle_emphasis(preceding, expected):
    assert can_toggle_emphasis(preceding) is expected


def test_bold_and_italic_spans():
    assert _html("*bold*") == "<b>bold</b>"
    assert _html("a _b_ c") == "a <i>b</i> c"
    assert _html("*_x_*") == "<b><i>x</i></b>"


def test_underscores_inside_words_are_literal():
    assert _html("word_with_underscore_inside") == "word_with_underscore_inside"
    assert _html("snake*case*name") == "snake*case*name"


def test_mismatched_closing_marker_closes_top_span():
    assert _html("*bold _it* tail") == "<b>bold <i>it</i> tail</b>"
    assert _html("_a *b_ c") == "<i>a <b>b</b> c</i>"


def test_marker_inside_word_without_open_span_is_literal():
    assert _html("*x* snake_case") == "<b>x</b> snake_case"


def test_marker_after_digit_toggles():
    assert _html("2*3*4") == "2<b>3</b>4"


def test_unclosed_span_is_closed_at_line_end():
    assert _html("*open") == "<b>open</b>"
    assert _html("{{open") == "<code>open</code>"


def test_code_span_is_opaque():
    assert _html("{{a}}") == "<code>a</code>"
    assert _html("{{*x* _y_}}") == "<code>*x* _y_</code>"
    assert _html("{{a[0]}}") == "<code>a[0]</code>"


def test_backslash_escapes_inside_code_span():
    assert _html("{{\\*x}}") == "<code>*x</code>"
    assert _html("{{a\\}}}") == "<code>a}</code>"


def test_backslash_outside_code_is_literal():
    assert _html("a\\b") == "a\\b"


def test_literal_text_is_escaped():
    assert _html("a < b & c > \"d\"") == "a &lt; b &amp; c &gt; &quot;d&quot;"


def test_heading_at_line_start():
    html, state = parse_line("h2. Title", ParserState())

    assert html == "<h2>Title"
    assert state.heading_tag == "h2"


@pytest.mark.parametrize("line", ["h7. Title", " h2. Title", "xh2. Title", "h2 Title"])
def test_heading_only_at_position_zero(line):
    html, state = parse_line(line, ParserState())

    assert state.heading_tag is None
    assert "<h" not in html


def test_heading_tag_resets_every_line():
    _, state = parse_line("h1. One", ParserState())
    _, state = parse_line("plain", state)

    assert state.heading_tag is None


def test_consecutive_bullets_share_one_list():
    html_one, state = parse_line("* one", ParserState())
    html_two, state = parse_line("* two", state)

    assert html_one == "<ul><li> one"
    assert html_two == "<li> two"
    assert state.in_list is True

    html_three, state = parse_line("after", state)
    assert html_three == "</ul>after"
    assert state.in_list is False


def test_dash_bullet_discards_leading_spaces():
    html, state = parse_line("   - item", ParserState())

    assert html == "<ul><li> item"
    assert state.in_list is True


def test_bullet_requires_following_space():
    assert _html("-not a bullet") == "-not a bullet"
    assert _html("*bold* start") == "<b>bold</b> start"


def test_bullet_only_at_line_start():
    assert _html("text - not bullet") == "text - not bullet"
    assert _html("text * bold") == "text <b> bold</b>"


def test_indented_line_keeps_list_open():
    html, state = parse_line("  continued", ParserState(in_list=True))

    assert html == "  continued"
    assert state.in_list is True


def test_blank_line_closes_list():
    assert parse_line("", ParserState(in_list=True)) == ("</ul>", ParserState())
    assert parse_line("   ", ParserState(in_list=True)) == ("</ul>", ParserState())
    assert parse_line("", ParserState()) == ("", ParserState())


def test_heading_after_list_closes_list_first():
    html, state = parse_line("h3. Next", ParserState(in_list=True))

    assert html == "</ul><h3>Next"
    assert state == ParserState(in_list=False, heading_tag="h3")


def test_link_without_url_uses_title_as_target():
    assert (
        _html("see [http://example.com/x]")
        == 'see <a href="http://example.com/x" target="_new">http://example.com/x</a>'
    )


def test_link_with_url_is_rewritten():
    html = _html("[Link Text|http://mo.joyent.com/illumos-joyent/foo]")

    assert html == (
        '<a href="https://github.com/joyent/illumos-joyent/foo" target="_new">Link Text</a>'
    )


def test_link_title_and_url_are_escaped():
    html = _html('[a"b|http://x.com/?q=1&r=2]')

    assert html == '<a href="http://x.com/?q=1&amp;r=2" target="_new">a&quot;b</a>'


def test_link_uses_configured_rules():
    config = PublisherConfig(
        rewrite_rules={"git.internal": (RewriteRule("/src", "code.example.org", "/pub"),)}
    )

    html, _ = parse_line("[x|http://git.internal/src/a]", ParserState(), config)

    assert 'href="https://code.example.org/pub/a"' in html


def test_user_and_attachment_references():
    assert _html("ping [~jdoe]") == "ping <b>@jdoe</b>"
    assert _html("[^core<1>.txt]") == "<b>[attachment core&lt;1&gt;.txt]</b>"


def test_unterminated_link_drops_rest_of_line():
    assert _html("see [unterminated *link") == "see "


def test_emphasis_after_link():
    assert _html("[~bob] *said*") == "<b>@bob</b> <b>said</b>"
