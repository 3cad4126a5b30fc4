"""
Filename policy shared by the local file, the remote path and the completion check.

`codepoint` is the canonical policy: every character of the label is written as
its code point (`永` -> `U+6C38`, `ab` -> `U+0061-U+0062`), which is reversible and
never collides across scripts. `ascii` is the older transliterate-and-strip
policy; it is kept for repositories that were filled with it, and loses
information for non-Latin labels.
"""
import re
import unicodedata
from typing import Literal, Tuple

NamingPolicy = Literal["codepoint", "ascii"]

FALLBACK_STEM = "export"
SVG_EXT = ".svg"

_ALLOWED = re.compile(r"[A-Za-z0-9_-]")


def codepoint_stem(label: str) -> str:
    if not label:
        return FALLBACK_STEM
    return "-".join("U+%04X" % ord(ch) for ch in label)


def ascii_stem(label: str) -> str:
    decomposed = unicodedata.normalize("NFKD", label)
    out = []
    for ch in decomposed:
        if unicodedata.combining(ch):
            continue
        if _ALLOWED.match(ch):
            out.append(ch)
        elif ch.isspace():
            out.append("-")
    return "".join(out) or FALLBACK_STEM


def file_stem(label: str, policy: NamingPolicy = "codepoint") -> str:
    if policy == "codepoint":
        return codepoint_stem(label)
    if policy == "ascii":
        return ascii_stem(label)
    raise ValueError(f"unknown naming policy: {policy}")


def occurrence_stem(stem: str, occurrence: int) -> str:
    """Stem of the n-th repeat of a label: `x`, `x-1`, `x-2`, ..."""
    return stem if occurrence == 0 else f"{stem}-{occurrence}"


def decode_codepoint_stem(stem: str) -> str:
    """Inverse of codepoint_stem; a trailing dedup counter is ignored."""
    chars = []
    for part in stem.split("-"):
        if not part.startswith("U+"):
            continue
        chars.append(chr(int(part[2:], 16)))
    return "".join(chars)


def split_name(path: str) -> Tuple[str, str, str]:
    """`a/b/x.svg` -> (`a/b`, `x`, `.svg`)."""
    folder, _, name = path.rpartition("/")
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return folder, name, ""
    return folder, stem, "." + ext
