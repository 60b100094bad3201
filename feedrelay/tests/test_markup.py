from feedrelay.processing.markup import escape_multiline, html_to_markdown


def test_empty_input():
    assert html_to_markdown("") == ""
    assert html_to_markdown("   ") == ""


def test_link():
    assert html_to_markdown('<a href="https://x">link</a>') == "<https://x|link>"


def test_empty_href_keeps_text():
    assert html_to_markdown('<a href="">click</a>') == "click"


def test_fragment_only_href_keeps_text():
    assert html_to_markdown('<a href="#">top</a>') == "top"


def test_missing_href_keeps_text():
    assert html_to_markdown("<a>plain</a>") == "plain"


def test_empty_anchor_uses_title():
    assert html_to_markdown('<a href="https://x" title="Example"></a>') == '<https://x "Example"|Example>'


def test_empty_anchor_uses_aria_label():
    html = '<a href="https://x" aria-label="Home"><span></span></a>'
    assert html_to_markdown(html) == "<https://x|Home>"


def test_empty_anchor_without_fallback_is_omitted():
    assert html_to_markdown('<a href="https://x"></a>') == ""


def test_title_quotes_are_escaped():
    html = '<a href="https://x" title=\'say "hi"\'>t</a>'
    assert html_to_markdown(html) == '<https://x "say \\"hi\\""|t>'


def test_link_is_padded_from_surrounding_words():
    html = 'see<a href="https://x">here</a>now'
    assert html_to_markdown(html) == "see <https://x|here> now"


def test_no_padding_before_punctuation():
    html = 'see <a href="https://x">here</a>.'
    assert html_to_markdown(html) == "see <https://x|here>."


def test_bold_uses_single_asterisk():
    assert html_to_markdown("<b>bold</b>") == "*bold*"
    assert html_to_markdown("<strong>bold</strong>") == "*bold*"


def test_italic_uses_underscore():
    assert html_to_markdown("<em>it</em>") == "_it_"


def test_escape_multiline():
    assert escape_multiline("  first\n\n  second ") == "first\\\nsecond"
    assert escape_multiline("single") == "single"


def test_empty_title_falls_back_to_aria_label():
    html = '<a href="https://x" title="" aria-label="Home"></a>'
    assert html_to_markdown(html) == '<https://x ""|Home>'
