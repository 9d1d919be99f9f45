"""Helpers for cleaning raw process output before it is logged."""

import re


_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def clean_output(text: str, collapse: bool = False) -> str:
    """Strip terminal escapes, control characters and trailing whitespace.

    Args:
        text: Raw text as produced by a process
        collapse: Also drop blank lines and join the rest with single newlines
    """
    text = _ANSI_ESCAPE.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    lines = [line.rstrip() for line in text.split("\n")]
    if collapse:
        lines = [line.strip() for line in lines if line.strip()]
    return "\n".join(lines).strip("\n")
