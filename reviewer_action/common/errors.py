# SPDX-License-Identifier: MIT OR Apache-2.0
# SPDX-FileCopyrightText: The CR Cab Reviewer Action Contributors

from __future__ import annotations


class ReviewerBotError(RuntimeError):
    """Base class for failures that end a run with a message."""


class ConfigurationError(ReviewerBotError):
    """Missing or invalid action input, or an event the action cannot handle."""


class ApiResponseFormatError(ReviewerBotError):
    """The CR Cab API answered with a body this action does not understand."""


class ApiFetchError(ReviewerBotError):
    """
    The CR Cab API could not be reached or refused the request.

    ``status_code`` and ``status_text`` are None when the failure happened
    below HTTP (connection refused, DNS, timeout).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status_text: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text


class GitHubApiError(ReviewerBotError):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
