#!/usr/bin/env python3
# SPDX-License-Identifier: MIT OR Apache-2.0
# SPDX-FileCopyrightText: The CR Cab Reviewer Action Contributors

"""
CR Cab Reviewer Action

Requests a review from one available CR Cab reviewer when a pull request is
opened. The flow for each pull request event is:

  1. Read the urgency checkbox ticked in the PR description
     (``- [x] P0`` / ``- [x] P1`` / ``- [x] P2``, texts configurable).
  2. Ask the CR Cab API which reviewers are available for that urgency.
  3. Drop the PR author and pick one of the remaining reviewers. The pick is
     stable per PR (seeded by the PR number or the ``seed`` input).
  4. Request a review from that person through the GitHub API.

Inputs (see action.yml):

  cr_cab_api_key      CR Cab API key (required)
  checkbox_p0_text    Text marking P0 (default "P0")
  checkbox_p1_text    Text marking P1 (default "P1")
  checkbox_p2_text    Text marking P2 (default "P2")
  seed                Integer overriding the PR number as selection seed
  fail_on_api_error   Fail the run when CR Cab is unavailable (default false)
  token               GitHub token (defaults to GITHUB_TOKEN)

Local usage:

    GITHUB_EVENT_NAME=pull_request GITHUB_EVENT_PATH=event.json \\
    INPUT_CR_CAB_API_KEY=... uv run python -m reviewer_action.reviewer_bot --dry-run
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import requests

from reviewer_action.common import actions
from reviewer_action.common.cr_cab_api import fetch_reviewers
from reviewer_action.common.errors import ConfigurationError, GitHubApiError, ReviewerBotError
from reviewer_action.common.selection import filter_author, select_reviewer
from reviewer_action.common.urgency import detect_urgency

PULL_REQUEST_EVENTS = {"pull_request", "pull_request_target"}
GITHUB_API_URL = "https://api.github.com"


# ==============================================================================
# Configuration
# ==============================================================================


@dataclass(frozen=True)
class ActionInputs:
    api_key: str
    checkbox_p0: str
    checkbox_p1: str
    checkbox_p2: str
    seed: str
    fail_on_api_error: bool
    github_token: str


@dataclass(frozen=True)
class PullRequestEvent:
    number: int
    body: str
    author: str
    owner: str
    repo: str


def load_inputs() -> ActionInputs:
    """Read the action inputs. The API key is masked as soon as it is read."""
    api_key = actions.get_input("cr_cab_api_key", required=True)
    actions.set_secret(api_key)

    github_token = actions.get_input("token") or os.environ.get("GITHUB_TOKEN", "")
    actions.set_secret(github_token)

    return ActionInputs(
        api_key=api_key,
        checkbox_p0=actions.get_input("checkbox_p0_text") or "P0",
        checkbox_p1=actions.get_input("checkbox_p1_text") or "P1",
        checkbox_p2=actions.get_input("checkbox_p2_text") or "P2",
        seed=actions.get_input("seed"),
        fail_on_api_error=actions.get_boolean_input("fail_on_api_error"),
        github_token=github_token,
    )


def load_pull_request_event() -> PullRequestEvent:
    """Load the pull request from the workflow event payload."""
    event_name = os.environ.get("GITHUB_EVENT_NAME", "")
    if event_name not in PULL_REQUEST_EVENTS:
        raise ConfigurationError("This action only works on pull_request events")

    event_path = os.environ.get("GITHUB_EVENT_PATH", "")
    if not event_path:
        raise ConfigurationError("GITHUB_EVENT_PATH not set")

    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Missing event payload: {event_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in event payload {event_path}: {exc}") from exc

    pull_request = payload.get("pull_request")
    if not isinstance(pull_request, dict):
        raise ConfigurationError("Event payload has no pull_request")

    repository = os.environ.get("GITHUB_REPOSITORY", "")
    if "/" in repository:
        owner, repo = repository.split("/", 1)
    else:
        repo_data = payload.get("repository") or {}
        owner = (repo_data.get("owner") or {}).get("login", "")
        repo = repo_data.get("name", "")
    if not owner or not repo:
        raise ConfigurationError("Could not determine repository owner/name")

    try:
        return PullRequestEvent(
            number=int(pull_request["number"]),
            body=pull_request.get("body") or "",
            author=pull_request["user"]["login"],
            owner=owner,
            repo=repo,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Malformed pull_request in event payload: {exc}") from exc


# ==============================================================================
# GitHub API Helpers
# ==============================================================================


def request_reviewer(token: str, pr: PullRequestEvent, reviewer: str) -> None:
    """Request a review from ``reviewer`` on the pull request."""
    url = f"{GITHUB_API_URL}/repos/{pr.owner}/{pr.repo}/pulls/{pr.number}/requested_reviewers"
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }

    response = requests.request(
        "POST", url, headers=headers, json={"reviewers": [reviewer]}, timeout=30
    )

    if response.status_code >= 400:
        raise GitHubApiError(
            f"GitHub API error requesting review from @{reviewer}: "
            f"{response.status_code} {response.reason}",
            response.status_code,
        )


# ==============================================================================
# Main
# ==============================================================================


def run(dry_run: bool = False) -> str | None:
    """
    Process one pull request event.

    Returns the login review was requested from, or None when nobody was
    eligible (which is not a failure).
    """
    inputs = load_inputs()
    pr = load_pull_request_event()

    actions.info(f"Processing PR #{pr.number} by @{pr.author}")

    urgency = detect_urgency(pr.body, inputs.checkbox_p0, inputs.checkbox_p1, inputs.checkbox_p2)
    actions.info(f"Detected urgency: {urgency}")
    actions.set_output("urgency", urgency)

    available_reviewers = fetch_reviewers(inputs.api_key, urgency, inputs.fail_on_api_error)
    if not available_reviewers:
        actions.warning(f"No reviewers available for {urgency}")
        actions.set_output("reviewer", "")
        return None

    actions.info(f"Found {len(available_reviewers)} available reviewers")

    eligible_reviewers = filter_author(available_reviewers, pr.author)
    if not eligible_reviewers:
        actions.warning("No eligible reviewers (all are the PR author)")
        actions.set_output("reviewer", "")
        return None

    try:
        selected = select_reviewer(eligible_reviewers, inputs.seed, pr.number)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid seed input: {exc}") from exc
    actions.info(f"Selected reviewer: @{selected}")

    if not inputs.github_token:
        raise ConfigurationError("GitHub token is required")

    if dry_run:
        actions.info(f"Dry run: not requesting review from @{selected}")
    else:
        request_reviewer(inputs.github_token, pr, selected)
        actions.info(f"Successfully requested review from @{selected}")

    actions.set_output("reviewer", selected)
    return selected


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the reviewer action."""
    parser = argparse.ArgumentParser(
        description="Request a PR review from an available CR Cab reviewer."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Select a reviewer but do not request the review on GitHub",
    )
    args = parser.parse_args(argv)

    try:
        run(dry_run=args.dry_run)
    except ReviewerBotError as exc:
        actions.error(str(exc))
        return 1
    except Exception as exc:
        actions.error(f"Unexpected failure: {type(exc).__name__}: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
