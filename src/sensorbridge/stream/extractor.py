"""Map the free-text lines of one frame onto named sensor fields.

Firmware revisions print the same readings with different labels, and some
labels carry a parenthetical range (``Hall raw (0-4095): 4095``) whose
digits precede the actual reading.  Each line is classified by an ordered
table of :class:`FieldRule` entries; the first rule whose pattern matches
owns the line.

Example frame::

    Temperature (C): 24.40
    Capacitive raw (touchRead): 732
    Photodiode raw (0-4095): 86
    Hall raw (0-4095): 4095  Intensity%: 0
    VIBRATION: NORMAL
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sensorbridge.stream.frame import FieldValue, Number, SensorFrame

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

logger = logging.getLogger(__name__)

_NUMBER = r"[-+]?\d+(?:\.\d+)?"

_COLON_NUMBER_RE = re.compile(rf":\s*({_NUMBER})")
# A sign directly after a digit is a range dash ("0-4095"), not a minus.
_NUMBER_TOKEN_RE = re.compile(rf"(?<![\d.]){_NUMBER}")
# A reading with an optional unit suffix: "1200 rpm", "3.3V", "80%".
_UNIT_NUMBER_RE = re.compile(rf"({_NUMBER})\s*(?:[a-z%\N{{DEGREE SIGN}}/]+)?", re.IGNORECASE)
_INTENSITY_LABEL_RE = re.compile(rf"intensity\s*%?\s*[:\s]\s*({_NUMBER})", re.IGNORECASE)
_KEY_VALUE_RE = re.compile(r"^(.+?)\s*:\s*(.+)$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

# Unlabeled numeric lines fill these fields in order.
SLOT_ORDER: tuple[str, ...] = (
    "temperature_c",
    "capacitive_raw",
    "photodiode_raw",
    "hall_raw",
    "intensity_pct",
)


def parse_number(token: str) -> Number | None:
    """Parse a numeric token; integers stay ``int``.  Unparsable -> ``None``."""
    try:
        return float(token) if "." in token else int(token)
    except ValueError:
        return None


def number_after_colon_or_last(text: str) -> Number | None:
    """Return the number after the last colon, else the last number in *text*.

    ``"Photodiode raw (0-4095): 86"`` yields ``86``, never the ``0`` from
    the range annotation.
    """
    after_colon = _COLON_NUMBER_RE.findall(text)
    if after_colon:
        return parse_number(after_colon[-1])
    tokens = _NUMBER_TOKEN_RE.findall(text)
    if not tokens:
        return None
    return parse_number(tokens[-1])


def normalize_key(label: str) -> str:
    """Normalize a free-text label into a fallback key (``"Fan Speed"`` -> ``"fan_speed"``)."""
    return _NON_ALNUM_RE.sub("_", label.strip().lower()).strip("_")


@dataclass
class _FrameDraft:
    """Mutable accumulator used while one line list is being classified."""

    named: dict[str, FieldValue] = field(default_factory=dict)
    extra: dict[str, FieldValue] = field(default_factory=dict)

    def build(self) -> SensorFrame | None:
        frame = SensorFrame(**self.named, extra=dict(self.extra))  # type: ignore[arg-type]
        return None if frame.is_empty() else frame


@dataclass(frozen=True)
class FieldRule:
    """One line classification rule: a label pattern and what to do with a match."""

    name: str
    pattern: re.Pattern[str]
    apply: Callable[[str, _FrameDraft], None]

    def matches(self, line: str) -> bool:
        return self.pattern.search(line) is not None


# ---------------------------------------------------------------------------
# Rule actions
# ---------------------------------------------------------------------------


def _numeric(attr: str) -> Callable[[str, _FrameDraft], None]:
    def _apply(line: str, draft: _FrameDraft) -> None:
        value = number_after_colon_or_last(line)
        if value is not None:
            draft.named[attr] = value

    return _apply


def _apply_hall(line: str, draft: _FrameDraft) -> None:
    """Hall reading, optionally followed by an intensity reading on the same line."""
    label = _INTENSITY_LABEL_RE.search(line)
    head = line[: label.start()] if label else line

    hall = number_after_colon_or_last(head)
    if hall is not None:
        draft.named["hall_raw"] = hall

    if label is not None:
        intensity = parse_number(label.group(1))
        if intensity is not None:
            draft.named["intensity_pct"] = intensity
        return

    # Unlabeled trailing value: only a guess, so never replace a real reading.
    tokens = _NUMBER_TOKEN_RE.findall(line)
    if len(tokens) < 2 or "intensity_pct" in draft.named:
        return
    last = parse_number(tokens[-1])
    if last is not None and last != hall:
        draft.named["intensity_pct"] = last


def _apply_vibration(line: str, draft: _FrameDraft) -> None:
    draft.named["vibration_state"] = line


def _apply_key_value(line: str, draft: _FrameDraft) -> None:
    """Store an unlabeled reading under its normalized label.

    A value that is a number with an optional unit keeps only the number;
    anything else (``"AUTO"``, ``"v1.2.3"``) is kept as the trimmed string.
    """
    match = _KEY_VALUE_RE.match(line)
    if match is None:
        return
    key = normalize_key(match.group(1))
    if not key:
        return
    raw = match.group(2).strip()
    reading = _UNIT_NUMBER_RE.fullmatch(raw)
    value = parse_number(reading.group(1)) if reading else None
    draft.extra[key] = value if value is not None else raw


def _apply_slot_fill(line: str, draft: _FrameDraft) -> None:
    value = parse_number(line.strip())
    if value is None:
        return
    for attr in SLOT_ORDER:
        if attr not in draft.named:
            draft.named[attr] = value
            return


DEFAULT_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        "temperature",
        re.compile(r"temperature\s*\(\s*c\s*\)|^temp\s*[:(]", re.IGNORECASE),
        _numeric("temperature_c"),
    ),
    FieldRule(
        "capacitive",
        re.compile(r"capacitive\s+raw|touch\s*read", re.IGNORECASE),
        _numeric("capacitive_raw"),
    ),
    FieldRule(
        "photodiode",
        re.compile(r"photodiode|photo\s*raw", re.IGNORECASE),
        _numeric("photodiode_raw"),
    ),
    FieldRule("hall", re.compile(r"hall\s+raw|hall\s*\(", re.IGNORECASE), _apply_hall),
    FieldRule(
        "intensity", re.compile(r"intensity\s*%", re.IGNORECASE), _numeric("intensity_pct")
    ),
    FieldRule("vibration", re.compile(r"vibration", re.IGNORECASE), _apply_vibration),
    FieldRule("key_value", _KEY_VALUE_RE, _apply_key_value),
    FieldRule("bare_number", re.compile(rf"^{_NUMBER}$"), _apply_slot_fill),
)


class FieldExtractor:
    """Classifies frame lines with an ordered rule table.

    Usage::

        extractor = FieldExtractor()
        frame = extractor.extract(["Temperature (C): 24.40", "VIBRATION: NORMAL"])
        # frame.temperature_c == 24.4
    """

    def __init__(self, rules: Sequence[FieldRule] | None = None) -> None:
        self._rules = tuple(rules) if rules is not None else DEFAULT_RULES

    @property
    def rule_names(self) -> tuple[str, ...]:
        """Rule names in evaluation order."""
        return tuple(rule.name for rule in self._rules)

    def classify(self, line: str) -> FieldRule | None:
        """Return the first rule that owns *line*, or ``None``."""
        for rule in self._rules:
            if rule.matches(line):
                return rule
        return None

    def extract(self, lines: Iterable[str]) -> SensorFrame | None:
        """Build a :class:`SensorFrame` from *lines*.

        Returns ``None`` when no line yields a field.  *lines* is only read.
        """
        draft = _FrameDraft()
        for raw in lines:
            line = raw.strip()
            if not line:
                continue
            rule = self.classify(line)
            if rule is None:
                logger.debug("Unrecognized line: %r", line)
                continue
            rule.apply(line, draft)
        return draft.build()


_DEFAULT_EXTRACTOR = FieldExtractor()


def extract_frame(lines: Iterable[str]) -> SensorFrame | None:
    """Extract a frame with the default rule table."""
    return _DEFAULT_EXTRACTOR.extract(lines)
