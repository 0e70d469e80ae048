"""Minimal re-implementation of ffmpeg's filter string tokenizer for tests.

``get_token`` follows libavutil's ``av_get_token``: a backslash escapes the
next character, and ``'...'`` quotes a literal run. A filter is split twice:
once at the graph level (up to ``[],;``) and once per option (up to ``:``).
"""
from typing import Dict, Tuple


def get_token(buf: str, term: str) -> Tuple[str, str]:
    out = []
    i = len(buf) - len(buf.lstrip(" \n\t\r"))
    while i < len(buf) and buf[i] not in term:
        c = buf[i]
        if c == "\\" and i + 1 < len(buf):
            out.append(buf[i + 1])
            i += 2
        elif c == "'":
            close = buf.find("'", i + 1)
            if close == -1:
                close = len(buf)
            out.append(buf[i + 1:close])
            i = close + 1
        else:
            out.append(c)
            i += 1
    return "".join(out), buf[i:]


def parse_filter(filter_str: str) -> Tuple[str, Dict[str, str]]:
    """Split a single-filter graph into its name and unescaped options.

    Raises AssertionError if the graph would not hold exactly one filter.
    """
    name, rest = get_token(filter_str, "=,;[")
    assert rest.startswith("="), f"no arguments in {filter_str!r}"
    args, remainder = get_token(rest[1:], "[],;")
    assert remainder == "", f"graph splits at {remainder!r}"

    options = {}
    while args:
        key, sep, args = args.partition("=")
        assert sep, f"option without value: {key!r}"
        value, args = get_token(args, ":")
        options[key] = value
        args = args[1:]
    return name, options
