"""Rule-based field extraction for envelope faces.

Each field is described by a priority-ordered pattern table and a face
visitation order. ``first_match`` walks the ``(face, pattern)`` pairs in
order and returns the first non-empty hit, so the precedence of every
field is readable straight from the tables below.
"""

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from koden_ocr.utils.logger import get_logger

from .donation_type import ceremonial_pattern
from .models import BACK, FACES, FRONT, INNER_BACK, INNER_FRONT, ExtractedField
from .numerals import NUMERAL_CHARS, convert_numeral

logger = get_logger(__name__)

COMBINED = "combined"

_NUM = f"[{NUMERAL_CHARS}]+"
_YEN = "[円圓]"

# Pattern definitions: (name, regex, base_confidence)
_AMOUNT_PATTERNS: list[tuple[str, str, float]] = [
    ("kin_yen", rf"金\s*({_NUM})\s*{_YEN}", 0.95),
    ("yen", rf"({_NUM})\s*{_YEN}", 0.9),
    ("kingaku", rf"金額\s*[:：]?\s*[¥￥]?\s*({_NUM})", 0.85),
    ("yen_sign", rf"[¥￥]\s*({_NUM})", 0.85),
    ("kin", rf"金\s*({_NUM})(?![^\s也])", 0.7),
]

# 金一封 names a gift of unstated value.
_LUMP_SUM_RE = re.compile(r"金\s*一\s*封")

_AMOUNT_ONLY_RE = re.compile(
    rf"(?:金額?\s*[:：]?\s*)?[¥￥]?\s*({_NUM})\s*{_YEN}?\s*也?"
)

TITLES: list[str] = [
    # Executives
    "代表取締役社長", "代表取締役会長", "代表取締役副社長", "代表取締役専務",
    "代表取締役", "取締役社長", "取締役会長", "専務取締役", "常務取締役",
    "社外取締役", "取締役", "執行役員", "監査役", "会長", "副会長", "社長",
    "副社長", "専務", "常務", "顧問", "相談役", "代表", "代表理事",
    "理事長", "副理事長", "理事", "監事", "総裁", "頭取", "会頭",
    # Management
    "本部長", "副本部長", "事業部長", "事務局長", "支店長", "副支店長",
    "営業所長", "工場長", "所長", "副所長", "部長", "副部長", "次長",
    "課長", "課長代理", "係長", "主任", "室長", "店長", "組合長",
    # Academic and medical
    "学長", "副学長", "学部長", "校長", "教頭", "園長", "院長", "副院長",
    "名誉教授", "教授", "准教授", "講師", "助教",
    # Public and community roles
    "知事", "市長", "町長", "村長", "議員", "町内会長", "自治会長",
    # Religious and honorific
    "住職", "宮司", "牧師", "先生",
]

CORPORATE_FORMS: list[str] = [
    "特定非営利活動法人", "一般社団法人", "一般財団法人", "公益社団法人",
    "公益財団法人", "社会福祉法人", "株式会社", "有限会社", "合同会社",
    "合資会社", "合名会社", "医療法人", "学校法人", "宗教法人", "NPO法人",
    "(株)", "(有)", "(同)",
]

BUSINESS_SUFFIXES: list[str] = [
    "製作所", "工務店", "クリニック", "商事", "商会", "商店", "工業", "建設",
    "組合", "工房", "医院", "病院", "会館", "会社", "協会",
]

# Also the last character of surnames such as 長谷部 or 日下部.
UNIT_SUFFIXES: list[str] = ["店", "館", "部", "課"]

PREFECTURES: list[str] = [
    "北海道", "青森県", "岩手県", "宮城県", "秋田県", "山形県", "福島県",
    "茨城県", "栃木県", "群馬県", "埼玉県", "千葉県", "東京都", "神奈川県",
    "新潟県", "富山県", "石川県", "福井県", "山梨県", "長野県", "岐阜県",
    "静岡県", "愛知県", "三重県", "滋賀県", "京都府", "大阪府", "兵庫県",
    "奈良県", "和歌山県", "鳥取県", "島根県", "岡山県", "広島県", "山口県",
    "徳島県", "香川県", "愛媛県", "高知県", "福岡県", "佐賀県", "長崎県",
    "熊本県", "大分県", "宮崎県", "鹿児島県", "沖縄県",
]


def _alternation(words: Iterable[str]) -> str:
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


_TITLE_ALT = _alternation(TITLES)
_TITLE_RE = re.compile(rf"(?<!\w)(?:{_TITLE_ALT})(?!\w)")
_TRAILING_TITLE_RE = re.compile(rf"\s*(?:{_TITLE_ALT})$")

_CORP = _alternation(CORPORATE_FORMS)
_SUFFIX = _alternation(BUSINESS_SUFFIXES)
_UNIT = _alternation(UNIT_SUFFIXES)
_ORG_CHAR = r"[^\s,、。:]"
_NAME_CHAR = r"[㐀-䶿一-鿿豈-﫿々〆ヶぁ-ゖァ-ヺー]"

# A line holding exactly "surname given" is read as a person.
_NAME_LINE = rf"(?<![^\n]){_NAME_CHAR}{{1,5}}[^\S\n]+{_NAME_CHAR}{{1,5}}(?:\n|$)"

_ORGANIZATION_PATTERNS: list[tuple[str, str, float]] = [
    ("corporate_prefix", rf"(?:{_CORP})\s*{_ORG_CHAR}+", 0.9),
    ("corporate_suffix", rf"{_ORG_CHAR}+?\s*(?:{_CORP})", 0.9),
    ("business_suffix", rf"{_ORG_CHAR}{{2,}}(?:{_SUFFIX})(?!{_ORG_CHAR})", 0.75),
    (
        "unit_suffix",
        rf"(?<!{_ORG_CHAR})(?!{_NAME_LINE}){_ORG_CHAR}{{2,}}(?:{_UNIT})(?!{_ORG_CHAR})",
        0.7,
    ),
]

_NAME_PATTERNS: list[tuple[str, str, float]] = [
    (
        "labeled",
        rf"(?:氏名|お名前|御名前|名前)\s*[:：]?\s*({_NAME_CHAR}{{2,}}(?: {_NAME_CHAR}+)?)",
        0.9,
    ),
    ("surname_given", rf"(?<!{_NAME_CHAR})({_NAME_CHAR}{{1,5}} {_NAME_CHAR}{{1,5}})(?!{_NAME_CHAR})", 0.8),
    ("single_run", rf"(?<!{_NAME_CHAR})({_NAME_CHAR}{{2,8}})(?!{_NAME_CHAR})", 0.6),
]

_ADDR_CHAR = r"[^\s,、]"
_ADDRESS_PATTERNS: list[tuple[str, str, float]] = [
    ("prefecture", rf"(?:{_alternation(PREFECTURES)}){_ADDR_CHAR}*?[市区町村郡]{_ADDR_CHAR}*", 0.9),
    ("postal_code", r"〒\s*\d{3}-?\d{4}\s*([^\n]+)", 0.85),
    ("label", r"住所\s*[:：]?\s*([^\n]+)", 0.8),
]

_POSTAL_CODE_RE = re.compile(r"〒?\s*\d{3}-\d{4}")
_HONORIFIC_RE = re.compile(r"御中|様|殿")

# Face visitation orders.
TITLE_FACES = (FRONT, BACK, INNER_BACK)
ORGANIZATION_FACES = (FRONT, BACK, INNER_BACK)
NAME_FACES = (FRONT, BACK, INNER_BACK)
ADDRESS_FACES = (BACK, INNER_BACK, FRONT, INNER_FRONT)


@dataclass(frozen=True)
class FieldPattern:
    """A compiled extraction pattern with its selection policy.

    The value is capture group 1 when the regex has groups, otherwise the
    whole match. With ``longest`` set, every match in the text is
    considered and the longest value wins; otherwise the first does.
    """

    name: str
    regex: re.Pattern[str]
    confidence: float
    longest: bool = False

    def find(
        self, text: str, convert: Callable[[str], str] | None = None
    ) -> tuple[str, re.Match[str]] | None:
        best: tuple[str, re.Match[str]] | None = None
        for match in self.regex.finditer(text):
            raw = match.group(1) if self.regex.groups else match.group(0)
            value = convert(raw) if convert else raw.strip()
            if not value:
                continue
            if not self.longest:
                return value, match
            if best is None or len(value) > len(best[0]):
                best = value, match
        return best


def _compile(
    table: list[tuple[str, str, float]], longest: bool = False
) -> list[FieldPattern]:
    return [
        FieldPattern(name, re.compile(regex), confidence, longest)
        for name, regex, confidence in table
    ]


AMOUNT_PATTERNS = _compile(_AMOUNT_PATTERNS)
ORGANIZATION_PATTERNS = _compile(_ORGANIZATION_PATTERNS)
NAME_PATTERNS = _compile(_NAME_PATTERNS, longest=True)
ADDRESS_PATTERNS = _compile(_ADDRESS_PATTERNS)


def face_pairs(
    faces: Sequence[str], patterns: Sequence[FieldPattern]
) -> list[tuple[str, FieldPattern]]:
    """Order ``(face, pattern)`` pairs face-major: all patterns per face."""
    return [(face, pattern) for face in faces for pattern in patterns]


def first_match(
    field_name: str,
    candidates: Iterable[tuple[str, FieldPattern]],
    texts: Mapping[str, str],
    convert: Callable[[str], str] | None = None,
) -> ExtractedField | None:
    """Return the first non-empty match over ordered ``(face, pattern)`` pairs.

    Args:
        field_name: Name recorded on the extracted field.
        candidates: Pairs evaluated in order; evaluation stops at the
            first hit.
        texts: Text to search, keyed by face.
        convert: Optional transform applied to each captured value; a
            capture that converts to ``""`` does not count as a hit.

    Returns:
        The winning field, or ``None`` if nothing matched.
    """
    for face, pattern in candidates:
        text = texts.get(face, "")
        if not text:
            continue
        found = pattern.find(text, convert)
        if found is None:
            continue
        value, match = found
        return ExtractedField(
            field_name=field_name,
            value=value,
            face=face,
            pattern=pattern.name,
            confidence=pattern.confidence,
            start_pos=match.start(),
            end_pos=match.end(),
        )
    return None


def _join_faces(
    texts: Mapping[str, str], faces: Sequence[str]
) -> tuple[str, list[tuple[int, int, str]]]:
    """Concatenate faces with newlines, remembering each face's span."""
    parts: list[str] = []
    spans: list[tuple[int, int, str]] = []
    offset = 0
    for face in faces:
        text = texts.get(face, "")
        if not text:
            continue
        if parts:
            offset += 1
        spans.append((offset, offset + len(text), face))
        parts.append(text)
        offset += len(text)
    return "\n".join(parts), spans


def _remove(pattern: re.Pattern[str], text: str) -> str:
    # Removed spans become line breaks so neighbouring words never fuse.
    return pattern.sub("\n", text)


class RuleExtractor:
    """Regex-based extractor for the fields of a condolence-gift envelope.

    All methods take the normalized per-face text map and are pure: they
    never mutate their input and return ``None`` (or an empty map) when a
    field is not found.

    Args:
        ceremonial: Regex of ceremonial inscriptions to strip before name
            and organization matching. Defaults to the donation-type
            vocabulary.
    """

    def __init__(self, ceremonial: re.Pattern[str] | None = None) -> None:
        self.ceremonial = ceremonial or ceremonial_pattern()

    def extract_amount(self, texts: Mapping[str, str]) -> ExtractedField | None:
        """Find the gift amount in the text of all faces combined."""
        blob, spans = _join_faces(texts, FACES)
        result = first_match(
            "amount",
            [(COMBINED, p) for p in AMOUNT_PATTERNS],
            {COMBINED: blob},
            convert=convert_numeral,
        )
        if result is not None:
            result.face = next(
                (face for start, end, face in spans if start <= result.start_pos < end),
                COMBINED,
            )
            logger.debug("Amount %s from %s (%s)", result.value, result.face, result.pattern)
        return result

    def extract_enclosed_amount(
        self, texts: Mapping[str, str]
    ) -> ExtractedField | None:
        """Find the amount written on the inner envelope front."""
        return first_match(
            "enclosed_amount",
            face_pairs([INNER_FRONT], AMOUNT_PATTERNS),
            texts,
            convert=convert_numeral,
        )

    def is_amount_only(self, text: str) -> bool:
        """Whether a face holds nothing but an amount expression."""
        match = _AMOUNT_ONLY_RE.fullmatch(text.strip())
        return bool(match and convert_numeral(match.group(1)))

    def extract_title(self, texts: Mapping[str, str]) -> ExtractedField | None:
        """Find a job title or role from the closed title vocabulary."""
        for face in TITLE_FACES:
            text = texts.get(face, "")
            if not text or self.is_amount_only(text):
                continue
            match = _TITLE_RE.search(text)
            if match:
                return ExtractedField(
                    field_name="title",
                    value=match.group(0),
                    face=face,
                    pattern="title_vocabulary",
                    confidence=0.85,
                    start_pos=match.start(),
                    end_pos=match.end(),
                )
        return None

    def _organization_candidate(self, text: str, title: str) -> str:
        text = _remove(self.ceremonial, text)
        if title:
            text = text.replace(title, "\n")
        # Street addresses end in 館/店-like tokens often enough to mislead.
        text = _remove(ADDRESS_PATTERNS[0].regex, text)
        text = _remove(_POSTAL_CODE_RE, text)
        return _remove(_HONORIFIC_RE, text)

    def extract_organizations(
        self, texts: Mapping[str, str], title: str = ""
    ) -> dict[str, ExtractedField]:
        """Find the organization name on each face, keyed by face.

        Args:
            texts: Normalized text keyed by face.
            title: Previously detected title, removed from the candidate
                text so it is not folded into the organization name.

        Returns:
            Mapping of face to its organization match, in face order.
        """
        candidates = {
            face: self._organization_candidate(texts.get(face, ""), title)
            for face in ORGANIZATION_FACES
        }
        found: dict[str, ExtractedField] = {}
        for face in ORGANIZATION_FACES:
            result = first_match(
                "organization_name", face_pairs([face], ORGANIZATION_PATTERNS), candidates
            )
            if result is None:
                continue
            trimmed = _TRAILING_TITLE_RE.sub("", result.value).strip()
            if trimmed:
                result.value = trimmed
                found[face] = result
        return found

    def _name_candidate(self, text: str) -> str:
        for pattern in (self.ceremonial, _TITLE_RE, _LUMP_SUM_RE):
            text = _remove(pattern, text)
        for field_pattern in (*AMOUNT_PATTERNS, *ADDRESS_PATTERNS):
            text = _remove(field_pattern.regex, text)
        text = _remove(_POSTAL_CODE_RE, text)
        return _remove(_HONORIFIC_RE, text)

    def extract_personal_name(
        self,
        texts: Mapping[str, str],
        organization_faces: Iterable[str] = (),
    ) -> ExtractedField | None:
        """Find the payer's personal name.

        Args:
            texts: Normalized text keyed by face.
            organization_faces: Faces where an organization was found;
                these are not searched for a personal name.

        Returns:
            The name match, or ``None``.
        """
        skipped = set(organization_faces)
        faces = [face for face in NAME_FACES if face not in skipped]
        candidates = {face: self._name_candidate(texts.get(face, "")) for face in faces}
        return first_match("personal_name", face_pairs(faces, NAME_PATTERNS), candidates)

    def extract_address(self, texts: Mapping[str, str]) -> ExtractedField | None:
        """Find the payer's address, preferring the back faces."""
        return first_match("address", face_pairs(ADDRESS_FACES, ADDRESS_PATTERNS), texts)
