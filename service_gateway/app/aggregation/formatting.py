"""
Rendering helpers shared by the aggregated JSON resources.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional, Union


ADDRESS_PREFIX = "0x"
ADDRESS_LENGTH = 42


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_js_number(value: float) -> str:
    """Render a float the way a JavaScript ``Number#toString`` would.

    Integral values lose their trailing ``.0``. Values from ``1e-6`` up to
    ``1e21`` are written out in full; outside that range exponents drop the
    leading zero and carry an explicit sign (``1e-7``, ``1e+21``).
    """
    if math.isfinite(value) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))

    text = repr(value)
    if "e" not in text:
        return text

    mantissa, exponent = text.split("e")
    exp = int(exponent)
    if exp < 0 and abs(value) >= 1e-6:
        # repr switches to exponents below 1e-4; spell out the shortest digits instead
        sign = "-" if mantissa.startswith("-") else ""
        digits = mantissa.lstrip("-").replace(".", "")
        return f"{sign}0.{'0' * (-exp - 1)}{digits}"
    return f"{mantissa}e{'+' if exp > 0 else '-'}{abs(exp)}"


def normalize_address(raw: Any) -> Optional[str]:
    """Lowercase ``raw`` and return it if it looks like ``0x`` plus 40 chars."""
    if not isinstance(raw, str):
        return None
    address = raw.lower()
    if not address.startswith(ADDRESS_PREFIX) or len(address) != ADDRESS_LENGTH:
        return None
    return address


def parse_finite_number(raw: Any) -> Optional[Union[int, float]]:
    if isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value
