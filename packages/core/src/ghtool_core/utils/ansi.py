import re

# CSI sequences (colors, cursor movement), OSC sequences terminated by BEL or ST,
# and lone two-character escapes.
_ANSI_ESCAPE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|\][^\x07\x1b]*(?:\x07|\x1b\\)|[@-Z\\-_])")

# Remaining C0 controls and DEL. Newline and tab are kept.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences and control characters from log text."""
    text = text.replace("\r\n", "\n")
    text = _ANSI_ESCAPE.sub("", text)
    return _CONTROL_CHARS.sub("", text)


def decode_log(data: bytes) -> str:
    return strip_ansi(data.decode("utf-8", errors="replace"))
