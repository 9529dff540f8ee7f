"""Front matter injection and extraction for fetched Markdown.

Injected front matter always has the same shape::

    ---
    title: 'Page title'
    description: 'Page description'
    ---

    <markdown>

Values are single-quoted YAML scalars with embedded quotes doubled, so the
block can be parsed back exactly by ``split_injected_meta``.
"""

from __future__ import annotations

import yaml

from agent_fetch.types import PageMeta

_BOM = "\ufeff"


def normalize_meta_value(value: str | None) -> str:
    """Collapse all whitespace runs to single spaces."""
    if not value:
        return ""
    return " ".join(value.split())


def yaml_quote(value: str) -> str:
    """Quote a string as a single-quoted YAML scalar."""
    return "'" + value.replace("'", "''") + "'"


def _after_opening_delimiter(markdown: str) -> str | None:
    text = markdown.removeprefix(_BOM)
    if text.startswith("---\n"):
        return text[4:]
    if text.startswith("---\r\n"):
        return text[5:]
    return None


def has_leading_front_matter(markdown: str) -> bool:
    """Return True if content starts with a closed ``---`` block.

    Any keys count, not only the ones this module injects.
    """
    rest = _after_opening_delimiter(markdown)
    if rest is None:
        return False
    return any(line.strip() == "---" for line in rest.split("\n"))


def prepend_meta_front_matter(markdown: str, meta: PageMeta) -> str:
    """Prepend title/description front matter to Markdown.

    Content that is blank or already starts with front matter is returned
    unchanged, which makes the operation idempotent.
    """
    if not markdown.strip() or has_leading_front_matter(markdown):
        return markdown

    title = normalize_meta_value(meta.title)
    description = normalize_meta_value(meta.description)
    if not title and not description:
        return markdown

    lines = ["---"]
    if title:
        lines.append(f"title: {yaml_quote(title)}")
    if description:
        lines.append(f"description: {yaml_quote(description)}")
    lines.append("---")
    return "\n".join(lines) + "\n\n" + markdown


def _parse_scalar(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        try:
            parsed = yaml.safe_load(value)
        except yaml.YAMLError:
            return value
        if isinstance(parsed, str):
            return parsed
    return value


def _parse_injected_block(lines: list[str]) -> PageMeta | None:
    title = ""
    description = ""
    known = 0

    for line in lines:
        item = line.rstrip("\r").strip()
        if not item or item.startswith("#"):
            continue

        key, sep, value = item.partition(":")
        if not sep:
            return None

        key = key.strip().lower()
        if key == "title":
            title = _parse_scalar(value)
        elif key == "description":
            description = _parse_scalar(value)
        else:
            return None
        known += 1

    if known == 0:
        return None
    return PageMeta(title=title, description=description)


def split_injected_meta(markdown: str) -> tuple[str, PageMeta | None]:
    """Separate injected title/description front matter from the body.

    Only blocks made exclusively of ``title`` and ``description`` keys are
    split off. Anything else (other keys, unterminated blocks, malformed
    lines) leaves the content untouched.

    Returns:
        Tuple of (body, meta). ``meta`` is None when nothing was split.
    """
    rest = _after_opening_delimiter(markdown)
    if rest is None:
        return markdown, None

    block: list[str] = []
    while True:
        if not rest:
            return markdown, None
        line, newline, rest = rest.partition("\n")
        if line.rstrip("\r").strip() == "---":
            break
        block.append(line)
        if not newline:
            return markdown, None

    meta = _parse_injected_block(block)
    if meta is None:
        return markdown, None

    if rest.startswith("\r\n"):
        rest = rest[2:]
    elif rest.startswith("\n"):
        rest = rest[1:]
    return rest, meta
