"""
HTML to chat markup conversion.

Feed content is HTML; chat webhooks understand a small markup dialect where
bold is `*text*`, italic is `_text_` and links are `<url|text>`. General tag
handling comes from markdownify; this module only overrides the rules that
differ, most importantly anchors.
"""
import re
import unicodedata

from bs4 import NavigableString
from markdownify import ATX, UNDERSCORE, MarkdownConverter, abstract_inline_conversion, chomp

_NEWLINES = re.compile(r"\s*\n[\s\n]*")


def escape_multiline(content: str) -> str:
    """Keep multi-line link text intact inside a single-line link token."""
    content = content.strip()
    return _NEWLINES.sub("\\\\\n", content)


def _is_punctuation(char: str) -> bool:
    return unicodedata.category(char).startswith("P")


def _needs_space_before(el) -> bool:
    previous = el.previous_sibling
    return isinstance(previous, NavigableString) and bool(previous) and not previous[-1].isspace()


def _needs_space_after(el) -> bool:
    following = el.next_sibling
    return (
        isinstance(following, NavigableString)
        and bool(following)
        and not following[0].isspace()
        and not _is_punctuation(following[0])
    )


class ChatMarkupConverter(MarkdownConverter):
    """markdownify converter emitting chat markup."""

    def __init__(self, **options):
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        options.setdefault("strong_em_symbol", UNDERSCORE)
        super().__init__(**options)

    # Chat bold is a single asterisk; italic keeps the underscore symbol.
    convert_b = abstract_inline_conversion(lambda self: "*")
    convert_strong = convert_b

    def convert_a(self, el, text, parent_tags):
        if "_noformat" in parent_tags:
            return text

        # Without a usable href this is not a link, keep the text as is
        href = el.get("href")
        if href is None or href.strip() in ("", "#"):
            return text

        prefix, suffix, content = chomp(text)
        content = escape_multiline(content)

        title = el.get("title")
        title_part = ""
        if title is not None:
            title = title.replace("\n", " ").replace('"', '\\"')
            title_part = f' "{title}"'

        # Icon-only links (svg, img without alt) carry their text in attributes
        if not content.strip():
            content = " ".join((el.get("title") or el.get("aria-label") or "").split())

        if not content:
            return ""

        # Don't glue the token to the words around it
        if not prefix and _needs_space_before(el):
            prefix = " "
        if not suffix and _needs_space_after(el):
            suffix = " "

        return f"{prefix}<{href}{title_part}|{content}>{suffix}"


def html_to_markdown(html: str) -> str:
    """
    Convert an HTML fragment to chat markup.

    Args:
        html: HTML content of a feed entry, may be empty

    Returns:
        str: Chat markup text
    """
    if not html or not html.strip():
        return ""
    return ChatMarkupConverter().convert(html)
