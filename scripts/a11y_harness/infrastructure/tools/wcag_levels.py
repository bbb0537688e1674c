"""
Mapping engine-specific rule metadata to WCAG conformance levels.

Checks always go from the strictest level down: "wcag2aa" contains
"wcag2a", so testing for level A first would file every AA rule under A.
"""

from __future__ import annotations

import re
from typing import Iterable

LEVEL_A   = "A"
LEVEL_AA  = "AA"
LEVEL_AAA = "AAA"

_AXE_TAGS = (
    (LEVEL_AAA, {"wcag2aaa", "wcag21aaa", "wcag22aaa"}),
    (LEVEL_AA,  {"wcag2aa", "wcag21aa", "wcag22aa"}),
    (LEVEL_A,   {"wcag2a", "wcag21a", "wcag22a"}),
)

_WAVE_LEVEL = re.compile(r"\(Level (AAA|AA|A)\)")


def classify_axe_tags(tags: Iterable[str]) -> str | None:
    tags = set(tags)
    for level, names in _AXE_TAGS:
        if tags & names:
            return level
    return None


def classify_sniff_code(code: str | None) -> str | None:
    """HTML_CodeSniffer / Pa11y codes start with the standard, e.g. WCAG2AA.Principle1…"""
    code = code or ""
    if "WCAG2AAA" in code:
        return LEVEL_AAA
    if "WCAG2AA" in code:
        return LEVEL_AA
    if "WCAG2A" in code:
        return LEVEL_A
    return None


def classify_wave_guidelines(names: Iterable[str]) -> str | None:
    """WAVE lists guidelines like "1.1.1 Non-text Content (Level A)"; the strictest one wins."""
    found = {m.group(1) for name in names if (m := _WAVE_LEVEL.search(name or ""))}
    for level in (LEVEL_AAA, LEVEL_AA, LEVEL_A):
        if level in found:
            return level
    return None


_RULE_ROW = re.compile(r"^\|\s*\[([^\]]+)\]")
_TAGS_COLUMN = 4


def rule_conformance_level(tags: Iterable[str]) -> str:
    tags = {t.strip().lower() for t in tags}
    if "deprecated" in tags:
        return "Deprecated"
    if "experimental" in tags:
        return "Experimental"
    if "best-practice" in tags:
        return "Best Practice"
    return classify_axe_tags(tags) or "None"


def parse_rule_descriptions(markdown: str) -> list[tuple[str, str]]:
    """
    Read axe-core's rule-descriptions.md and return (rule_id, level) pairs.

    Table rows look like ``| [area-alt](url) | desc | impact | tags | ...``;
    the tags sit in the fourth cell.
    """
    rules = []
    for line in markdown.splitlines():
        line = line.strip()
        if not line.startswith("|") or "Rule ID" in line or ":---" in line:
            continue
        match = _RULE_ROW.match(line)
        if not match:
            continue
        cells = [c.strip() for c in line.split("|")]
        if len(cells) <= _TAGS_COLUMN:
            continue
        tags = cells[_TAGS_COLUMN].split(",")
        rules.append((match.group(1), rule_conformance_level(tags)))
    return rules


def count_levels(levels: Iterable[str | None]) -> dict[str, int]:
    """Tally classified errors into the ToolSuccess level fields."""
    counts = {"level_a": 0, "level_aa": 0, "level_aaa": 0, "level_unknown": 0}
    for level in levels:
        if level == LEVEL_A:
            counts["level_a"] += 1
        elif level == LEVEL_AA:
            counts["level_aa"] += 1
        elif level == LEVEL_AAA:
            counts["level_aaa"] += 1
        else:
            counts["level_unknown"] += 1
    return counts
