# SPDX-License-Identifier: MIT OR Apache-2.0
# SPDX-FileCopyrightText: The CR Cab Reviewer Action Contributors

from __future__ import annotations

import re
from typing import Final, Literal

UrgencyValues = Literal["p0"] | Literal["p1"] | Literal["p2"]

# Highest priority first
URGENCY_PRIORITY: Final[tuple[UrgencyValues, ...]] = ("p0", "p1", "p2")

DEFAULT_URGENCY: Final[UrgencyValues] = "p1"

DEFAULT_CHECKBOX_TEXTS: Final[dict[UrgencyValues, str]] = {
    "p0": "P0",
    "p1": "P1",
    "p2": "P2",
}

# - [x] P0, * [X] P1, -[x] anything
CHECKED_BOX_PATTERN = re.compile(r"^[-*]\s*\[[xX]\]")


def detect_urgency(
    pr_body: str | None,
    checkbox_p0: str = "P0",
    checkbox_p1: str = "P1",
    checkbox_p2: str = "P2",
) -> UrgencyValues:
    """
    Detect the urgency tier ticked in a pull request description.

    Only checked list items count; each is matched case-insensitively
    against the three checkbox texts. When several tiers are ticked the
    highest one wins. Nothing ticked gives DEFAULT_URGENCY.
    """
    labels = {
        "p0": (checkbox_p0 or DEFAULT_CHECKBOX_TEXTS["p0"]).lower(),
        "p1": (checkbox_p1 or DEFAULT_CHECKBOX_TEXTS["p1"]).lower(),
        "p2": (checkbox_p2 or DEFAULT_CHECKBOX_TEXTS["p2"]).lower(),
    }
    found: set[UrgencyValues] = set()

    for line in (pr_body or "").split("\n"):
        line = line.strip()
        if not CHECKED_BOX_PATTERN.match(line):
            continue

        lower_line = line.lower()
        for urgency in URGENCY_PRIORITY:
            if labels[urgency] in lower_line:
                found.add(urgency)

    for urgency in URGENCY_PRIORITY:
        if urgency in found:
            return urgency

    return DEFAULT_URGENCY
