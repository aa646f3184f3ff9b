"""Configuration parsing and validation for the PR evaluation dashboard."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import ConfigurationError

DEFAULT_API_URL = "http://localhost:5001"
DEFAULT_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the dashboard."""

    api_url: str
    member: str
    from_date: date
    to_date: date
    repositories: Tuple[str, ...]
    state: Optional[str] = None
    target_branch: Optional[str] = None
    output_dir: Path = Path(".")
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    review_heavy_members: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def date_range(self) -> str:
        return f"{self.from_date.isoformat()} to {self.to_date.isoformat()}"


def _parse_member_list(raw: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_timeout(raw: str) -> int:
    try:
        timeout = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            "Invalid value for 'PR_DASHBOARD_TIMEOUT': expected an integer number of seconds."
        ) from exc

    if timeout <= 0:
        raise ConfigurationError(
            "Invalid value for 'PR_DASHBOARD_TIMEOUT': expected an integer greater than 0."
        )
    return timeout


def load_service_settings() -> Tuple[str, int]:
    """Read the upstream service URL and request timeout from the environment.

    Raises:
        ConfigurationError: If either value is malformed.
    """
    api_url = os.getenv("PR_DASHBOARD_API_URL", "").strip() or DEFAULT_API_URL
    if not api_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            "Invalid value for 'PR_DASHBOARD_API_URL': expected an http(s) URL."
        )

    timeout_raw = os.getenv("PR_DASHBOARD_TIMEOUT", "").strip()
    timeout_seconds = _parse_timeout(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
    return api_url.rstrip("/"), timeout_seconds


def load_config(
    member: str,
    from_date: date,
    to_date: date,
    repositories: List[str],
    state: Optional[str] = None,
    target_branch: Optional[str] = None,
    output_dir: Optional[Path] = None,
) -> Config:
    """Build and validate application configuration.

    Command-line values are combined with these environment variables:

    - ``PR_DASHBOARD_API_URL``: base URL of the upstream PR service.
    - ``PR_DASHBOARD_TIMEOUT``: per-request timeout in seconds.
    - ``PR_DASHBOARD_REVIEW_HEAVY_MEMBERS``: comma-separated member ids whose
      comment counts use the reviewer adjustment tiers.

    Raises:
        ConfigurationError: If the member or repositories are missing, the
            date range is inverted, or an environment value is invalid.
    """
    if not member.strip():
        raise ConfigurationError("A team member is required.")

    cleaned_repositories = tuple(repo.strip() for repo in repositories if repo.strip())
    if not cleaned_repositories:
        raise ConfigurationError("At least one repository is required.")

    if from_date > to_date:
        raise ConfigurationError(
            f"Invalid date range: {from_date.isoformat()} is after {to_date.isoformat()}."
        )

    api_url, timeout_seconds = load_service_settings()

    return Config(
        api_url=api_url,
        member=member.strip(),
        from_date=from_date,
        to_date=to_date,
        repositories=cleaned_repositories,
        state=state,
        target_branch=(target_branch or "").strip() or None,
        output_dir=output_dir or Path("."),
        timeout_seconds=timeout_seconds,
        review_heavy_members=_parse_member_list(
            os.getenv("PR_DASHBOARD_REVIEW_HEAVY_MEMBERS", "")
        ),
    )
