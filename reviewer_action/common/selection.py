# SPDX-License-Identifier: MIT OR Apache-2.0
# SPDX-FileCopyrightText: The CR Cab Reviewer Action Contributors

"""
Stable reviewer selection.

The reviewer for a pull request is picked by hashing a seed (the ``seed``
input, or the pull request number) and indexing into the candidate list.
This is NOT a random choice in the security sense: the same candidates and
seed always give the same reviewer, so re-running the workflow for a pull
request does not reshuffle its reviewer. Replacing this with a secure RNG
would lose that property.
"""

from __future__ import annotations

import re

LEADING_INTEGER = re.compile(r"^\s*([+-]?[0-9]+)")


def filter_author(reviewers: list[str], author: str) -> list[str]:
    """Drop the pull request author from the candidates (case-insensitive)."""
    author = author.lower()
    return [reviewer for reviewer in reviewers if reviewer.lower() != author]


def parse_seed(seed: str) -> int:
    """Parse the leading base-10 integer of a seed input ("42", " 7abc")."""
    match = LEADING_INTEGER.match(seed)
    if not match:
        raise ValueError(f"Seed must be an integer, got {seed!r}")
    return int(match.group(1))


def to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def seed_hash(seed: int) -> int:
    """Java-style 31x string hash of the seed's decimal form, as signed 32-bit."""
    result = 0
    for char in str(seed):
        result = to_int32(result * 31 + ord(char))
    return result


def select_reviewer(reviewers: list[str], seed: str | int | None, pr_number: int) -> str:
    if not reviewers:
        raise ValueError("No reviewers provided")
    if len(reviewers) == 1:
        return reviewers[0]

    if isinstance(seed, int):
        effective_seed = seed
    elif seed:
        effective_seed = parse_seed(seed)
    else:
        effective_seed = pr_number

    index = abs(seed_hash(effective_seed)) % len(reviewers)
    return reviewers[index]
