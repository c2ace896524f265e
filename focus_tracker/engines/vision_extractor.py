"""
Marker-based extraction of the final interview output.

Parses the narrative (Part 1) and the operational board (Part 2) out of the
interviewer's last reply. Malformed input degrades to empty fields; this
module never raises.
"""

from __future__ import annotations

import re

from focus_tracker.models.schemas import VisionOutput, VisionTile

_NARRATIVE_RE = re.compile(r"\[חלק 1[^\]]*\]\**\s*(.*?)(?=\**\[חלק 2|\Z)", re.DOTALL)
_BOARD_RE = re.compile(r"\[חלק 2[^\]]*\]\**\s*(.*?)(?=\**\[חלק 3|\Z)", re.DOTALL)

# Tile headers at line start: "**[name]**", "[name]" or "### name"
_TILE_SPLIT_RE = re.compile(r"^[ \t]*(\*\*\[|\[|#{2,4}[ \t]*)", re.MULTILINE)

# Labelled lines, optionally bulleted and bolded: "- **תמונת מצב:** ..."
_LINE_PREFIX = r"^[ \t]*(?:[-*•][ \t]*)?(?:\*\*)?"
_SNAPSHOT_RE = re.compile(_LINE_PREFIX + r"תמונת מצב[ \t]*:[ \t]*(.+)$", re.MULTILINE)
_ACTION_RE = re.compile(_LINE_PREFIX + r"פעולה[ \t]*\d*[ \t]*[.:][ \t]*(.+)$", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^[ \t]*(?:[-*•][ \t]*)?\d+[.)][ \t]*(.+)$", re.MULTILINE)
_ROUTINE_RE = re.compile(_LINE_PREFIX + r"שגרה[^:\n]*:[ \t]*(.+)$", re.MULTILINE)


def _clean(value: str) -> str:
    return value.strip().strip("*").strip()


def extract_narrative(text: str) -> str:
    match = _NARRATIVE_RE.search(text)
    return _clean(match.group(1)) if match else ""


def extract_tiles(text: str) -> list[VisionTile]:
    match = _BOARD_RE.search(text)
    if not match:
        return []

    parts = _TILE_SPLIT_RE.split(match.group(1))
    # parts = [preamble, delimiter, block, delimiter, block, ...]
    tiles: list[VisionTile] = []
    for delimiter, block in zip(parts[1::2], parts[2::2]):
        tile = parse_tile_block(block, bracketed="[" in delimiter)
        if tile is not None:
            tiles.append(tile)
    return tiles


def parse_tile_block(block: str, bracketed: bool = True) -> VisionTile | None:
    first_line, _, body = block.partition("\n")
    if bracketed:
        if "]" not in first_line:
            return None
        name = _clean(first_line.split("]", 1)[0])
    else:
        name = _clean(first_line.strip("[]"))
    if not name:
        return None

    snapshot = _SNAPSHOT_RE.search(body)
    routine = _ROUTINE_RE.search(body)

    actions = [_clean(item) for item in _ACTION_RE.findall(body)]
    if not actions:
        actions = [_clean(item) for item in _NUMBERED_RE.findall(body)]

    return VisionTile(
        name=name,
        snapshot=_clean(snapshot.group(1)) if snapshot else "",
        actions=[action for action in actions if action],
        routine=_clean(routine.group(1)) if routine else "",
    )


def extract_vision(text: str) -> VisionOutput:
    if not isinstance(text, str) or not text:
        return VisionOutput()
    return VisionOutput(narrative=extract_narrative(text), tiles=extract_tiles(text))
