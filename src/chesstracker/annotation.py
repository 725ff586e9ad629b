"""PGN header and move-text parsing for Chess.com game annotations.

This is deliberately not a PGN engine: tag lines are read into a fixed set of
fields and the move text is split into (move, clock) units as plain strings.
Both functions accept any string (or None) and never raise.
"""

import re
from dataclasses import dataclass, field

_TAG_RE = re.compile(r'^\[(\w+)\s+[^"]*"([^"]*)"')
_CLOCK_RE = re.compile(r"^\{\[%clk\s+([^\]]+)\]\}")
_WHITE_NUMBER_RE = re.compile(r"^\d+\.")
_BLACK_NUMBER_RE = re.compile(r"^\d+\.\.\.")
# A brace comment is one token even when it contains spaces.
_TOKEN_RE = re.compile(r"\{[^}]*\}?|[^\s{]+")

# Lower-cased PGN tag name -> AnnotationRecord attribute
KNOWN_TAGS = {
    "event": "event",
    "site": "site",
    "date": "date",
    "round": "round",
    "opening": "opening",
    "eco": "eco",
    "ecourl": "eco_url",
    "termination": "termination",
    "utcdate": "utc_date",
    "utctime": "utc_time",
    "starttime": "start_time",
    "enddate": "end_date",
    "endtime": "end_time",
    "currentposition": "current_position",
}


@dataclass(frozen=True)
class AnnotationRecord:
    event: str = ""
    site: str = ""
    date: str = ""
    round: str = ""
    opening: str = ""
    eco: str = ""
    eco_url: str = ""
    termination: str = ""
    utc_date: str = ""
    utc_time: str = ""
    start_time: str = ""
    end_date: str = ""
    end_time: str = ""
    current_position: str = ""
    moves_text: str = ""

    def as_dict(self) -> dict[str, str]:
        """Tag values keyed by attribute name, without the move text."""
        return {attr: getattr(self, attr) for attr in KNOWN_TAGS.values()}


@dataclass(frozen=True)
class MoveEntry:
    san_text: str
    clock_times: str = ""


@dataclass
class MoveList:
    entries: list[MoveEntry] = field(default_factory=list)

    @property
    def move_count(self) -> int:
        return len(self.entries)

    def san_moves(self) -> str:
        return " ".join(entry.san_text for entry in self.entries)

    def clock_times(self) -> str:
        return " | ".join(entry.clock_times for entry in self.entries)


def parse_annotation(text: str | None) -> AnnotationRecord:
    """Split an annotation into known header tags and the raw move text.

    Tag lines are lines that start with ``[`` and end with ``]`` once trimmed.
    Tags outside KNOWN_TAGS and tag lines without a quoted value are ignored.
    Every other non-blank line is move text, joined with single spaces.
    """
    if not text or not isinstance(text, str):
        return AnnotationRecord()

    tags: dict[str, str] = {}
    move_lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("[") and stripped.endswith("]"):
            match = _TAG_RE.match(stripped)
            if match:
                attr = KNOWN_TAGS.get(match.group(1).lower())
                if attr:
                    tags[attr] = match.group(2)
            continue
        move_lines.append(stripped)

    return AnnotationRecord(moves_text=" ".join(move_lines), **tags)


def tokenize_moves(moves_text: str | None) -> MoveList:
    """Group move text into one entry per move number with its clock values.

    ``1. e4 {[%clk 0:03:00]} 1... e5 {[%clk 0:02:58]}`` becomes a single entry
    ``("1. e4 1... e5", "0:03:00 0:02:58")``.
    """
    moves = MoveList()
    if not moves_text or not isinstance(moves_text, str):
        return moves

    text: list[str] | None = None
    clocks: list[str] = []

    def close() -> None:
        if text is not None:
            moves.entries.append(MoveEntry(" ".join(text), " ".join(clocks)))

    for token in _TOKEN_RE.findall(moves_text):
        if _BLACK_NUMBER_RE.match(token):
            if text is None:
                text = []
            text.append(token)
        elif _WHITE_NUMBER_RE.match(token):
            close()
            text, clocks = [token], []
        elif token.startswith("{") or token.endswith("}"):
            clock = _CLOCK_RE.match(token)
            if clock:
                if text is None:
                    text = []
                clocks.append(clock.group(1).strip())
        else:
            if text is None:
                text = []
            text.append(token)
    close()
    return moves
