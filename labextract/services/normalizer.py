import re

_WHITESPACE_RUN = re.compile(r"\s+")
_PARENTHESIZED = re.compile(r"\([^)]*\)")
_BRACKETED = re.compile(r"\[[^\]]*\]")
# ASCII word characters only; German umlauts and ß are listed explicitly.
_DISALLOWED = re.compile(r"[^\w\säöüß-]", flags=re.ASCII)


def normalize_name(name: str) -> str:
    """Reduce a free-text biomarker name to a comparable token string.

    "Apolipoprotein B (ApoB)" -> "apolipoprotein b", "Lipoprotein(a) [Lp(a)]" -> "lipoprotein".
    Two names are nominally equal when their normalized forms are equal.
    """
    text = _WHITESPACE_RUN.sub(" ", name.lower())
    text = _PARENTHESIZED.sub("", text)
    text = _BRACKETED.sub("", text)
    text = _DISALLOWED.sub("", text)
    # Removals above can leave doubled spaces behind; collapse again so the result is a fixed point.
    return _WHITESPACE_RUN.sub(" ", text).strip()
