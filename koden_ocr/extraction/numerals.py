"""Japanese numeral interpretation.

Converts amounts written with Arabic digits (half- or full-width), common
kanji digits, positional characters (十百千万億兆) and the ceremonial
large-numeral forms used on gift envelopes (壱, 弐, 参, 萬, ...) into a
plain ASCII digit string. Every supported character is listed once in
``NUMERAL_TABLE``; the conversion routine only consults that table.
"""

from enum import Enum

from koden_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class NumeralClass(Enum):
    """Role a character plays in a written number."""

    ARABIC = "arabic"
    DIGIT = "digit"
    UNIT = "unit"
    MYRIAD = "myriad"


def _build_table() -> dict[str, tuple[NumeralClass, int]]:
    table: dict[str, tuple[NumeralClass, int]] = {}
    for value in range(10):
        table[str(value)] = (NumeralClass.ARABIC, value)
        table[chr(ord("０") + value)] = (NumeralClass.ARABIC, value)

    digit_forms = {
        0: "〇零",
        1: "一壱壹弌",
        2: "二弐貳弍",
        3: "三参參弎",
        4: "四肆",
        5: "五伍",
        6: "六陸",
        7: "七漆柒",
        8: "八捌",
        9: "九玖",
    }
    for value, chars in digit_forms.items():
        for ch in chars:
            table[ch] = (NumeralClass.DIGIT, value)

    for chars, value in (("十拾什", 10), ("百佰陌", 100), ("千仟阡", 1000)):
        for ch in chars:
            table[ch] = (NumeralClass.UNIT, value)

    for chars, value in (("万萬", 10**4), ("億", 10**8), ("兆", 10**12)):
        for ch in chars:
            table[ch] = (NumeralClass.MYRIAD, value)
    return table


NUMERAL_TABLE: dict[str, tuple[NumeralClass, int]] = _build_table()

# Characters ignored anywhere inside a number.
SEPARATORS = frozenset(",，、 　\t")

# Regex character class body matching any numeral or separator character.
NUMERAL_CHARS = "".join(sorted(NUMERAL_TABLE)) + ",，"

_COMMON_DIGITS = "〇一二三四五六七八九"
_POSITIONAL = (NumeralClass.UNIT, NumeralClass.MYRIAD)
_KANJI = (NumeralClass.DIGIT, NumeralClass.UNIT, NumeralClass.MYRIAD)


def _accumulate(entries: list[tuple[NumeralClass, int]]) -> int:
    """Evaluate a sequence of classified numeral characters positionally."""
    man = 0
    tmp = 0
    num = 0
    has_digit = False
    for kind, value in entries:
        if kind in (NumeralClass.ARABIC, NumeralClass.DIGIT):
            num = num * 10 + value
            has_digit = True
        elif kind is NumeralClass.UNIT:
            tmp += (num if has_digit else 1) * value
            num = 0
            has_digit = False
        else:
            pending = tmp + num
            if pending == 0 and not has_digit:
                pending = 1
            man += pending * value
            tmp = 0
            num = 0
            has_digit = False
    return man + tmp + num


def _split_kanji_prefix(
    entries: list[tuple[NumeralClass, int]],
) -> tuple[list[tuple[NumeralClass, int]], list[tuple[NumeralClass, int]]] | None:
    """Split ``三千200``-style input into its kanji prefix and digit suffix."""
    split = len(entries)
    while split > 0 and entries[split - 1][0] is NumeralClass.ARABIC:
        split -= 1
    prefix, suffix = entries[:split], entries[split:]
    if not prefix or not suffix:
        return None
    if not all(kind in _KANJI for kind, _ in prefix):
        return None
    if not any(kind in _POSITIONAL for kind, _ in prefix):
        return None
    return prefix, suffix


def convert_numeral(text: str | None) -> str:
    """Convert a written amount into an ASCII digit string.

    Args:
        text: Numeral text such as ``"壱萬"``, ``"１０，０００"`` or ``"三千"``.

    Returns:
        The value as plain digits, or ``""`` if no number can be read.
    """
    if not text:
        return ""

    chars = [ch for ch in text if ch not in SEPARATORS]
    if not chars:
        return ""

    entries = [NUMERAL_TABLE.get(ch) for ch in chars]
    if all(entry is not None for entry in entries):
        known = [entry for entry in entries if entry is not None]
        parts = _split_kanji_prefix(known)
        if parts is not None:
            prefix, suffix = parts
            return str(_accumulate(prefix)) + "".join(str(v) for _, v in suffix)
        return str(_accumulate(known))

    digits = "".join(
        str(entry[1])
        for entry in entries
        if entry is not None and entry[0] is NumeralClass.ARABIC
    )
    if not digits:
        logger.debug("No numeral found in %r", text)
    return digits


def to_kanji_numeral(value: int) -> str:
    """Render a non-negative integer in common kanji positional notation.

    ``to_kanji_numeral(10500)`` returns ``"一万五百"``; zero is ``"〇"``.
    """
    if value < 0:
        raise ValueError(f"Negative amounts are not representable: {value}")
    if value == 0:
        return "〇"

    def below_man(n: int) -> str:
        out = []
        for unit, char in ((1000, "千"), (100, "百"), (10, "十")):
            count, n = divmod(n, unit)
            if count:
                out.append(("" if count == 1 else _COMMON_DIGITS[count]) + char)
        if n:
            out.append(_COMMON_DIGITS[n])
        return "".join(out)

    parts = []
    for scale, char in ((10**12, "兆"), (10**8, "億"), (10**4, "万")):
        count, value = divmod(value, scale)
        if count:
            parts.append(below_man(count) + char)
    if value:
        parts.append(below_man(value))
    return "".join(parts)
