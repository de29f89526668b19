# SPDX-License-Identifier: MIT OR Apache-2.0
# SPDX-FileCopyrightText: The CR Cab Reviewer Action Contributors

"""
Client for the CR Cab reviewer availability API.

    GET https://cr-cab.com/api/reviewers/available?severity=p0|p1|p2

The body is either a bare list of reviewers or an object of the form
``{"reviewers": [...], "count": N, "severity": "p1"}``. Each reviewer is a
GitHub login, or an object carrying it as ``githubUsername``.

Failure handling:

- 5xx responses and network errors are retried with fixed delays of 250ms
  and 750ms (three attempts in total).
- 4xx responses are not retried.
- When retries run out, or on a 4xx, ``fail_on_api_error`` decides whether
  ``ApiFetchError`` is raised or a warning is logged and None returned.
- A body of the wrong shape always raises ``ApiResponseFormatError``.

Nothing logged here includes the API key, request headers or response
bodies.
"""

from __future__ import annotations

import re
import time
from typing import Any

import requests

from . import actions
from .errors import ApiFetchError, ApiResponseFormatError
from .urgency import UrgencyValues

CR_CAB_API_URL = "https://cr-cab.com/api/reviewers/available"
REQUEST_TIMEOUT = 30

# Delay in milliseconds before each retry; its length is the retry budget
RETRY_DELAYS_MS = (250, 750)

# Non-empty, no whitespace or control characters
LOGIN_PATTERN = re.compile(r"^[^\s\x00-\x1f\x7f]+$")


def build_headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def normalize_reviewers(data: Any) -> list[str]:
    """Turn a decoded response body into a list of GitHub logins."""
    if isinstance(data, list):
        entries = data
    elif isinstance(data, dict) and isinstance(data.get("reviewers"), list):
        entries = data["reviewers"]
    else:
        raise ApiResponseFormatError("Invalid API response format")

    reviewers = []
    for index, entry in enumerate(entries):
        if isinstance(entry, str):
            login = entry
        elif isinstance(entry, dict) and isinstance(entry.get("githubUsername"), str):
            login = entry["githubUsername"]
        else:
            raise ApiResponseFormatError(
                f"Invalid reviewer entry at index {index}: "
                f"expected a string or an object with githubUsername, "
                f"got {type(entry).__name__}"
            )

        if not LOGIN_PATTERN.match(login):
            raise ApiResponseFormatError(
                f"Invalid reviewer entry at index {index}: "
                f"login is empty or contains whitespace"
            )
        reviewers.append(login)
    return reviewers


def _give_up(message: str, warning: str, fail_on_api_error: bool,
             response: requests.Response | None = None) -> None:
    """Raise in strict mode, otherwise log a warning."""
    if fail_on_api_error:
        if response is None:
            raise ApiFetchError(message)
        raise ApiFetchError(message, response.status_code, response.reason)
    actions.warning(warning)


def fetch_reviewers(
    api_key: str,
    urgency: UrgencyValues,
    fail_on_api_error: bool = False,
) -> list[str] | None:
    """
    Fetch the reviewers CR Cab reports as available for an urgency tier.

    Returns the list of GitHub logins, or None when the API failed and
    ``fail_on_api_error`` is False.
    """
    headers = build_headers(api_key)
    max_attempts = len(RETRY_DELAYS_MS) + 1

    for attempt in range(1, max_attempts + 1):
        is_last_attempt = attempt == max_attempts

        try:
            response = requests.get(
                CR_CAB_API_URL,
                params={"severity": urgency},
                headers=headers,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            if not is_last_attempt:
                delay = RETRY_DELAYS_MS[attempt - 1]
                actions.info(
                    f"CR Cab API network error ({type(e).__name__}) on attempt "
                    f"{attempt}/{max_attempts}, retrying in {delay}ms"
                )
                time.sleep(delay / 1000)
                continue
            _give_up(
                f"CR Cab API network error after {max_attempts} attempts "
                f"({type(e).__name__})",
                f"CR Cab API network error after {max_attempts} attempts "
                f"({type(e).__name__}), skipping reviewer assignment",
                fail_on_api_error,
            )
            return None

        status = response.status_code

        if status >= 500:
            if not is_last_attempt:
                delay = RETRY_DELAYS_MS[attempt - 1]
                actions.info(
                    f"CR Cab API returned status={status} on attempt "
                    f"{attempt}/{max_attempts}, retrying in {delay}ms"
                )
                time.sleep(delay / 1000)
                continue
            _give_up(
                f"CR Cab API error: {status} {response.reason}",
                f"CR Cab API unavailable (status={status}) after "
                f"{max_attempts} attempts, skipping reviewer assignment",
                fail_on_api_error,
                response,
            )
            return None

        if status >= 400:
            _give_up(
                f"CR Cab API error: {status} {response.reason}",
                f"CR Cab API error (status={status}), skipping reviewer assignment",
                fail_on_api_error,
                response,
            )
            return None

        try:
            data = response.json()
        except ValueError as e:
            raise ApiResponseFormatError(
                "Invalid API response format: body is not valid JSON"
            ) from e

        return normalize_reviewers(data)

    return None
