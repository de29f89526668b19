# SPDX-License-Identifier: MIT OR Apache-2.0
# SPDX-FileCopyrightText: The CR Cab Reviewer Action Contributors

"""
Helpers for talking to the GitHub Actions runner.

Inputs arrive as ``INPUT_<NAME>`` environment variables, diagnostics are
printed to the job log using workflow commands (``::warning::`` etc.), and
outputs are appended to the file named by ``GITHUB_OUTPUT``.

Every message printed through this module is passed through ``redact`` so
that values registered with ``set_secret`` never reach the log in clear text,
even if the runner-side masking is unavailable (e.g. when run locally).
"""

from __future__ import annotations

import os

from .errors import ConfigurationError

_secrets: set[str] = set()

TRUE_VALUES = {"true", "yes", "1", "on"}
FALSE_VALUES = {"false", "no", "0", "off", ""}


def input_env_name(name: str) -> str:
    """Map an action input name to the env var the runner sets for it."""
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(name: str, required: bool = False) -> str:
    value = os.environ.get(input_env_name(name), "").strip()
    if required and not value:
        raise ConfigurationError(f"Input required and not supplied: {name}")
    return value


def get_boolean_input(name: str, default: bool = False) -> bool:
    value = get_input(name).lower()
    if not value:
        return default
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"Input {name} must be a boolean (true/false), got {value!r}"
    )


def set_secret(value: str) -> None:
    """Register a value to be masked in all further log output."""
    if not value:
        return
    _secrets.add(value)
    # The runner itself must see the raw value to mask it downstream
    print(f"::add-mask::{value}")


def clear_secrets() -> None:
    _secrets.clear()


def redact(message: str) -> str:
    for secret in _secrets:
        message = message.replace(secret, "***")
    return message


def info(message: str) -> None:
    print(redact(message))


def warning(message: str) -> None:
    print(f"::warning::{redact(message)}")


def error(message: str) -> None:
    print(f"::error::{redact(message)}")


def set_output(name: str, value: str) -> None:
    if "\n" in value or "\r" in value:
        raise ValueError(f"Output {name} must be a single line")
    with open(os.environ.get("GITHUB_OUTPUT", "/dev/null"), "a") as f:
        f.write(f"{name}={value}\n")
