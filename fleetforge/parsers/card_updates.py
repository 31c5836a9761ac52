"""
Card update rewriting.

Old fleet lists name cards as they were printed when the list was made.
The updates table maps an outdated display string to its current one
("Old Name (5)" -> "New Name (6)") so renamed or re-costed cards still
resolve against the current catalog.
"""

import logging

logger = logging.getLogger(__name__)

_BULLET = "•"


def apply_card_updates(text: str, updates: dict[str, str]) -> str:
    """
    Rewrite lines that exactly match an outdated display string.

    A line matches when its trimmed text, with or without a leading
    bullet, equals an old display string. A leading bullet is preserved.
    Other lines are returned unchanged.
    """
    if not updates:
        return text

    lines = text.split("\n")
    for i, line in enumerate(lines):
        stripped = line.strip()
        bare = stripped[len(_BULLET):].strip() if stripped.startswith(_BULLET) else stripped
        new = updates.get(bare)
        if not isinstance(new, str):
            continue
        bullet = f"{_BULLET} " if stripped.startswith(_BULLET) else ""
        logger.debug("CARD_UPDATE: %r -> %r", bare, new)
        lines[i] = f"{bullet}{new}"

    return "\n".join(lines)
