"""Minimal clean-up of free text before it reaches a model or the logs.

Only ``<`` and ``>`` are stripped.  This is not an HTML sanitizer: the widget
escapes whatever it renders.
"""

import re

MAX_INPUT_LENGTH = 500

_ANGLE_BRACKETS = re.compile(r"[<>]")


def sanitize_input(text: str) -> str:
    """Trim, truncate to ``MAX_INPUT_LENGTH`` characters and drop ``<``/``>``."""
    return _ANGLE_BRACKETS.sub("", text.strip()[:MAX_INPUT_LENGTH])
