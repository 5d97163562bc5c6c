# scoretrack/currency.py
from __future__ import annotations
import math
from typing import Optional

from scoretrack.errors import ParseError


def parse_currency(text: Optional[str]) -> Optional[float]:
    """Parse cells such as ``22.63``, ``$3,208.46`` or ``-$45,749.70``.

    Empty cells are absent values (``None``), never zero.
    """
    if text is None:
        return None
    s = text.strip()
    if not s:
        return None

    negative = False
    if s.startswith("-"):
        negative = True
        s = s[1:].lstrip()
    if s.startswith("$"):
        s = s[1:].lstrip()
    # "$-1.00" shows up occasionally as well
    if not negative and s.startswith("-"):
        negative = True
        s = s[1:].lstrip()
    s = s.replace(",", "")

    try:
        value = float(s)
    except ValueError:
        raise ParseError(f"Not a currency value: {text!r}") from None
    if not math.isfinite(value):
        raise ParseError(f"Not a finite currency value: {text!r}")
    return -value if negative else value


def parse_number(text: Optional[str]) -> Optional[float]:
    """Tolerant parse of a corpus numeric leaf; ``None`` when unusable."""
    if text is None:
        return None
    try:
        value = float(str(text).strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None
