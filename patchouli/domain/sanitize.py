import re

_MARKUP_RE = re.compile(r"[*_`#>~|\[\]]+")
_WS_RE = re.compile(r"\s+")


def plain_text_line(text: str, max_chars: int) -> str:
    """
    Reduce advisory text to one line of plain text.
    Markdown markers are dropped, whitespace (including line breaks) is
    collapsed, and the result is cut to max_chars.
    """
    cleaned = _MARKUP_RE.sub(" ", text)
    cleaned = _WS_RE.sub(" ", cleaned).strip()
    if len(cleaned) > max_chars:
        cleaned = cleaned[:max_chars].rstrip(" ,;")
    return cleaned
