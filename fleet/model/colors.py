"""Drone display colors."""

import random
import re
from typing import Optional

HEX_COLOR_PATTERN = re.compile(r"^#[0-9a-f]{6}$")


def random_color(rng: Optional[random.Random] = None) -> str:
    """Generate a random ``#rrggbb`` color."""
    rng = rng or random
    return f"#{rng.randint(0, 0xFFFFFF):06x}"


def is_generated_color(value: str) -> bool:
    """True if ``value`` has the shape produced by random_color()."""
    return bool(HEX_COLOR_PATTERN.match(value or ""))
