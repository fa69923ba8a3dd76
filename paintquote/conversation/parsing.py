"""Free-text answer parsing for intake steps.

Every parser is best-effort and returns None (or an empty dict) when it
finds nothing; callers decide whether to re-prompt. Nothing is ever
coerced to zero.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from paintquote.schemas.enums import ExpectedType, PaintQuality, ProjectType, Surface

# "1,250.50", "1250", ".5"; a comma only counts as a thousands separator before exactly 3 digits
_NUMBER = r"(?<![\w.])-?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?|(?<![\w.])\.\d+"
_NUMBER_RE = re.compile(_NUMBER)
_UNIT = r"(?:sq\.?\s*f(?:ee)?t\.?|sqft|square\s+f(?:ee|oo)t|sf|ft2|ft²)"
_SEGMENT_SPLIT_RE = re.compile(r",(?!\d{3}(?:\D|$))|;|\n")

SKIP_WORDS = frozenset({"skip", "none", "n/a", "na", "no", "nope", "not sure", "later", "pass", "-"})

YES_NO: dict[str, str] = {
    "yes": "yes",
    "yep": "yes",
    "yeah": "yes",
    "correct": "yes",
    "looks good": "yes",
    "sounds good": "yes",
    "confirm": "yes",
    "ok": "yes",
    "okay": "yes",
    "no": "no",
    "nope": "no",
    "change": "no",
    "wrong": "no",
}

PROJECT_TYPE_CHOICES: dict[str, str] = {
    "both": ProjectType.BOTH.value,
    "interior and exterior": ProjectType.BOTH.value,
    "inside and outside": ProjectType.BOTH.value,
    "exterior": ProjectType.EXTERIOR.value,
    "outside": ProjectType.EXTERIOR.value,
    "interior": ProjectType.INTERIOR.value,
    "inside": ProjectType.INTERIOR.value,
}

PAINT_QUALITY_CHOICES: dict[str, str] = {q.value: q.value for q in PaintQuality} | {
    "standard": PaintQuality.BETTER.value,
    "economy": PaintQuality.GOOD.value,
    "basic": PaintQuality.GOOD.value,
    "top": PaintQuality.PREMIUM.value,
}

_SURFACE_WORDS: dict[Surface, str] = {
    Surface.WALLS: r"walls?",
    Surface.CEILINGS: r"ceilings?",
    Surface.TRIM: r"trims?|baseboards?",
}

# Words that can never be part of a customer name
_NON_NAME_WORDS = frozenset({
    "wall", "walls", "ceiling", "ceilings", "trim", "only", "just", "no", "and", "with",
    "interior", "exterior", "inside", "outside", "both", "sqft", "sq", "ft", "feet", "square",
    "paint", "painting", "quote", "primer", "good", "better", "best", "premium", "markup",
    "room", "rooms", "bedroom", "bathroom", "kitchen", "hallway", "office", "house", "home",
    "yes", "yeah", "ok", "okay", "hi", "hello", "hey", "thanks", "please", "done", "skip",
    "the", "a", "an", "of", "for", "new", "customer", "client",
    "at", "on", "in", "from", "to", "is", "who", "needs", "wants", "i", "we",
})

_NAME_WORDS = r"([A-Za-z][A-Za-z.'\-]*(?:\s+[A-Za-z][A-Za-z.'\-]*){0,3})"
_CLIENT_CUE_RE = re.compile(
    rf"\b(?:customer|client)(?:'s)?(?:\s+name)?\s*(?:is|:|-)\s*{_NAME_WORDS}",
    re.IGNORECASE,
)
# Case-sensitive: "a quote for Jane Doe" names a customer, "a quote for interior painting" does not
_QUOTE_FOR_RE = re.compile(r"\b[Qq]uote\s+for\s+([A-Z][A-Za-z.'\-]*(?:\s+[A-Z][A-Za-z.'\-]*){0,3})")
_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
_PHONE_RE = re.compile(r"^\+?\(?\d{3}\)?[\s.\-]?\d{3}[\s.\-]?\d{4}$")
_ADDRESS_RE = re.compile(r"^\d+[A-Za-z]?\s+[A-Za-z][\w .'\-#]*$")
_MARKUP_RE = re.compile(
    rf"({_NUMBER})\s*%\s*markup|markup\s*(?:of|is|at|:|=)?\s*({_NUMBER})\s*%?",
    re.IGNORECASE,
)
_QUALITY_RE = re.compile(r"\b(good|better|best|premium)\s+(?:quality|paint|grade|tier)\b", re.IGNORECASE)


@dataclass(frozen=True)
class SubField:
    """One positional part of a compound answer."""

    name: str
    type: ExpectedType = ExpectedType.TEXT


def _to_decimal(token: str) -> Decimal | None:
    try:
        return Decimal(token.replace(",", ""))
    except InvalidOperation:
        return None


def parse_number(raw: str) -> Decimal | None:
    """Extract the first decimal-number-like substring.

    Tolerates "$", "%", units and thousands separators: "$1,250.50" → 1250.50,
    "350 sqft" → 350. Returns None if the text holds no number.
    """
    match = _NUMBER_RE.search(raw)
    if match is None:
        return None
    return _to_decimal(match.group(0))


def parse_percentage(raw: str) -> Decimal | None:
    """Same as parse_number; "45%", "45 percent" and "45" all give 45."""
    return parse_number(raw)


def parse_text(raw: str) -> str | None:
    cleaned = raw.strip()
    return cleaned or None


def _normalize(raw: str) -> str:
    return " ".join(re.sub(r"[^\w%/'\- ]", " ", raw.lower()).split())


def parse_choice(raw: str, choices: Mapping[str, str]) -> str | None:
    """Map a free-text answer onto a canonical choice.

    Synonyms are tried in declaration order as whole words, so list
    multi-word phrases ("interior and exterior") before their parts.
    """
    text = f" {_normalize(raw)} "
    for synonym, canonical in choices.items():
        if f" {synonym} " in text:
            return canonical
    return None


def is_skip(raw: str) -> bool:
    return _normalize(raw) in SKIP_WORDS


_GREETING_RE = re.compile(
    r"^(?:hi|hello|hey|howdy|good\s+(?:morning|afternoon|evening))(?:\s+there)?\b[\s,!.]*",
    re.IGNORECASE,
)
_INTRO_RE = re.compile(r"^(?:i'?m|i\s+am|my\s+name\s+is|my\s+name'?s|this\s+is|it'?s)\s+", re.IGNORECASE)
_OPENERS = frozenset({"start", "ready", "ok", "okay", "sure", "yes", "let's go", "lets go", "let's start", "go"})


def parse_owner_name(raw: str) -> str | None:
    """A person's name from "Sam Rivera", "Hi, I'm Sam Rivera" and the like.

    A bare greeting or "let's go" carries no name and gives None.
    """
    text = _GREETING_RE.sub("", raw.strip())
    text = _INTRO_RE.sub("", text).strip(" .!,")
    if not text or _normalize(text) in _OPENERS:
        return None
    return text


def split_segments(raw: str) -> list[str]:
    """Split on commas/semicolons/newlines, keeping "1,250" intact."""
    return [seg.strip() for seg in _SEGMENT_SPLIT_RE.split(raw) if seg.strip()]


def parse_compound(raw: str, schema: Sequence[SubField]) -> dict[str, Any] | None:
    """Parse "Product Name, $Cost, SpreadRate" style answers positionally.

    If fewer segments than the schema needs are present, nothing is set.
    Extra leading segments are folded into the first field, so product names
    containing commas survive. Sub-fields that fail to parse are left out.
    """
    segments = split_segments(raw)
    if len(segments) < len(schema):
        return None
    extra = len(segments) - len(schema)
    if extra:
        segments = [", ".join(segments[: extra + 1]), *segments[extra + 1:]]

    result: dict[str, Any] = {}
    for sub, segment in zip(schema, segments):
        if sub.type in (ExpectedType.NUMBER, ExpectedType.PERCENTAGE):
            value: Any = parse_number(segment)
        else:
            value = parse_text(segment)
        if value is not None:
            result[sub.name] = value
    return result or None


# ── Quote chat slot grammar ──────────────────────────────────────────


def _surface_of(word: str) -> Surface:
    for surface, pattern in _SURFACE_WORDS.items():
        if re.fullmatch(pattern, word, re.IGNORECASE):
            return surface
    msg = f"Not a surface word: {word}"
    raise ValueError(msg)


_SURFACE_ALT = "|".join(_SURFACE_WORDS.values())
_AREA_BEFORE_RE = re.compile(
    rf"({_NUMBER})\s*{_UNIT}?\s*(?:of\s+)?(?:the\s+)?(?:interior\s+|exterior\s+)?\b({_SURFACE_ALT})\b",
    re.IGNORECASE,
)
_AREA_AFTER_RE = re.compile(
    rf"\b({_SURFACE_ALT})\b\s*(?:area\s*)?(?:is|are|=|:|at|of|to|-|total(?:s|ing)?)?\s*(?:about\s+|around\s+|roughly\s+)?({_NUMBER})\s*{_UNIT}?",
    re.IGNORECASE,
)
_ONLY_RE = re.compile(rf"\b(?:only|just)\b|\b({_SURFACE_ALT})\s+only\b", re.IGNORECASE)
_EXCLUDE_RE = re.compile(rf"\b(?:no|without|skip(?:ping)?|except)\s+(?:the\s+)?({_SURFACE_ALT})\b", re.IGNORECASE)


def _extract_areas(segment: str) -> dict[str, Decimal]:
    """Surface areas in one segment.

    "walls 1000 sqft ceilings 400" and "1000 walls 400 ceilings" are both
    read left to right: whichever order the segment opens with wins, and a
    number is never claimed by two surfaces.
    """
    # (regex, surface group, number group)
    before = (_AREA_BEFORE_RE, 2, 1)
    after = (_AREA_AFTER_RE, 1, 2)
    orders = (after, before) if re.match(rf"\s*(?:{_SURFACE_ALT})\b", segment, re.IGNORECASE) else (before, after)

    areas: dict[str, Decimal] = {}
    claimed: set[int] = set()
    for pattern, surface_group, number_group in orders:
        for match in pattern.finditer(segment):
            key = f"measurements.{_surface_of(match.group(surface_group)).value}_sqft"
            start = match.start(number_group)
            value = _to_decimal(match.group(number_group))
            if value is None or key in areas or start in claimed:
                continue
            areas[key] = value
            claimed.add(start)
    return areas


def _extract_surfaces(segments: list[str]) -> list[str] | None:
    """Surfaces in scope, from "walls only" / "no ceilings" phrasing."""
    chosen: list[Surface] = []
    excluded: set[Surface] = set()
    for segment in segments:
        for match in _EXCLUDE_RE.finditer(segment):
            excluded.add(_surface_of(match.group(1)))
        if _ONLY_RE.search(segment):
            for word in re.findall(rf"\b(?:{_SURFACE_ALT})\b", segment, re.IGNORECASE):
                surface = _surface_of(word)
                if surface not in chosen and surface not in excluded:
                    chosen.append(surface)
    if chosen:
        return [s.value for s in chosen]
    if excluded:
        return [s.value for s in Surface if s not in excluded]
    return None


def _looks_like_name(segment: str) -> bool:
    words = segment.split()
    if not 1 <= len(words) <= 4:
        return False
    if not all(re.fullmatch(r"[A-Za-z][A-Za-z.'\-]*", w) for w in words):
        return False
    if any(w.lower().strip(".") in _NON_NAME_WORDS for w in words):
        return False
    if len(words) == 1:
        return words[0][0].isupper()
    return True


def _name_run(captured: str) -> str | None:
    """Leading words of a cue capture, cut at the first word that cannot be a name."""
    words: list[str] = []
    for word in captured.split():
        if word.lower().strip(".") in _NON_NAME_WORDS:
            break
        words.append(word)
    return " ".join(words).title() if words else None


def _cued_name(raw: str) -> str | None:
    """Customer name after "customer is ..." or, failing that, "quote for ..."."""
    for pattern in (_CLIENT_CUE_RE, _QUOTE_FOR_RE):
        for match in pattern.finditer(raw):
            name = _name_run(match.group(1))
            if name:
                return name
    return None


def extract_quote_slots(raw: str, *, allow_bare_name: bool = False) -> dict[str, Any]:
    """Pull quote fields out of a free-text chat message.

    Returns a flat delta keyed by dotted state path, e.g.
    ``{"customer.name": "John Smith", "project.surfaces": ["walls"]}``.
    Bare numbers without a surface ("123") are ambiguous and ignored.

    Args:
        raw: The user's message.
        allow_bare_name: Treat a segment that is only a name as the customer
            name. Only safe when the current question is about the customer.
    """
    segments = split_segments(raw)
    delta: dict[str, Any] = {}

    name = _cued_name(raw)
    if name:
        delta["customer.name"] = name

    for segment in segments:
        delta.update(_extract_areas(segment))

        if "customer.email" not in delta:
            email = _EMAIL_RE.search(segment)
            if email:
                delta["customer.email"] = email.group(0)
                continue
        if "customer.phone" not in delta and _PHONE_RE.match(segment):
            delta["customer.phone"] = segment
            continue
        if "customer.address" not in delta and _ADDRESS_RE.match(segment) and not _extract_areas(segment):
            delta["customer.address"] = segment
            continue
        if allow_bare_name and "customer.name" not in delta and _looks_like_name(segment):
            delta["customer.name"] = " ".join(w if w[0].isupper() else w.capitalize() for w in segment.split())

    project_type = parse_choice(raw, PROJECT_TYPE_CHOICES)
    if project_type is not None:
        lowered = raw.lower()
        if ("interior" in lowered or "inside" in lowered) and ("exterior" in lowered or "outside" in lowered):
            project_type = ProjectType.BOTH.value
        delta["project.type"] = project_type

    surfaces = _extract_surfaces(segments)
    if surfaces is not None:
        delta["project.surfaces"] = surfaces

    quality = _QUALITY_RE.search(raw)
    if quality:
        delta["products.paint_quality"] = quality.group(1).lower()

    markup = _MARKUP_RE.search(raw)
    if markup:
        value = _to_decimal(markup.group(1) or markup.group(2))
        if value is not None:
            delta["pricing.markup_percentage"] = value

    return delta
