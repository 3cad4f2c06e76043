"""
Character Access Policy

The allowed writing set is the GB2312 hanzi repertoire (level 1: rows B0-D7,
level 2: rows D8-F7, 94 cells each) plus a fixed set of full-width punctuation.
Membership is a pure test; nothing here touches the replica.
"""
from functools import lru_cache
from typing import FrozenSet, Iterable, List

# Common full-width punctuation accepted as writable characters
PUNCTUATION_CHARS = [
    "，", "。", "、", "；", "：", "？", "！", "“", "”", "‘", "’",
    "（", "）", "【", "】", "《", "》", "—", "…", "·",
]

_LOW_BYTES = range(0xA1, 0xFF)


def _decode_rows(high_bytes: Iterable[int]) -> List[str]:
    chars = []
    for high in high_bytes:
        for low in _LOW_BYTES:
            # D7FA-D7FE are unassigned
            if high == 0xD7 and low > 0xF9:
                continue
            try:
                char = bytes([high, low]).decode("gb2312")
            except UnicodeDecodeError:
                continue
            if len(char) == 1:
                chars.append(char)
    return chars


@lru_cache(maxsize=1)
def level1_chars() -> List[str]:
    """GB2312 level 1 hanzi (3755 common characters, pinyin order)."""
    return _decode_rows(range(0xB0, 0xD8))


@lru_cache(maxsize=1)
def level2_chars() -> List[str]:
    """GB2312 level 2 hanzi (radical/stroke order)."""
    return _decode_rows(range(0xD8, 0xF8))


@lru_cache(maxsize=1)
def allowed_chars() -> FrozenSet[str]:
    return frozenset(PUNCTUATION_CHARS) | frozenset(level1_chars()) | frozenset(level2_chars())


def gb2312_code(char: str) -> str:
    """Hex GB2312 code of a character, e.g. '啊' -> 'B0A1'; empty if not encodable."""
    try:
        return char.encode("gb2312").hex().upper()
    except UnicodeEncodeError:
        return ""


class CharacterAccessPolicy:
    """Validates whether a character belongs to the allowed writing set."""

    def __init__(self, extra_chars: Iterable[str] = ()):
        self._allowed = allowed_chars() | frozenset(extra_chars)

    def is_allowed(self, char) -> bool:
        return isinstance(char, str) and len(char) == 1 and char in self._allowed

    def __contains__(self, char) -> bool:
        return self.is_allowed(char)

    def __len__(self) -> int:
        return len(self._allowed)
