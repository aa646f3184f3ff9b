"""REST client for the upstream pull request service."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import requests

from .errors import ApiError, DataValidationError
from .models import PullRequestRecord, PullRequestState, TeamMember

logger = logging.getLogger(__name__)


class DashboardClient:
    """Small, typed client for the member and pull request endpoints."""

    _MAX_PARALLEL_REPOSITORIES = 8

    def __init__(self, base_url: str, timeout_seconds: int = 30) -> None:
        """Initialize a client for the upstream PR service.

        Args:
            base_url: Service root, for example ``http://localhost:5001``.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below ``/api``."""
        return f"{self._base_url}/api/{path.lstrip('/')}"

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse ISO8601 timestamps into timezone-aware datetimes.

        Raises:
            DataValidationError: If ``value`` is present but not a string.
        """
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            raise DataValidationError(f"Timestamp must be an ISO8601 string, got {value!r}.")

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """Execute a single GET request.

        Raises:
            ApiError: If the request fails or returns HTTP >= 400.
        """
        url = self._build_url(path)

        try:
            response = self._session.get(
                url, params=params, headers=headers, timeout=self._timeout_seconds
            )
        except requests.RequestException as exc:
            raise ApiError(f"PR service request failed: GET {url}") from exc

        if response.status_code >= 400:
            raise ApiError(
                "PR service request failed: "
                f"GET {url} returned {response.status_code} - {response.text}"
            )
        return response

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a single GET request and decode the JSON body.

        Raises:
            ApiError: If the request fails, returns HTTP >= 400, or does not
                return valid JSON.
        """
        response = self._get(path, params=params)

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"PR service returned invalid JSON: GET {response.url}") from exc

    def _get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        payload = self._get_json(path, params=params)
        if not isinstance(payload, list):
            raise ApiError(f"PR service returned unexpected payload shape for '{path}'.")
        return payload

    def list_members(self) -> List[TeamMember]:
        """List workspace members that pull requests can be queried for."""
        members: List[TeamMember] = []

        for item in self._get_list("members"):
            if not isinstance(item, dict):
                continue
            uuid = item.get("uuid")
            display_name = item.get("display_name")
            if not uuid or not display_name:
                continue
            username = item.get("username")
            members.append(
                TeamMember(
                    uuid=str(uuid),
                    display_name=str(display_name),
                    username=str(username) if username else None,
                )
            )

        return members

    def _parse_pull_request(self, item: Dict[str, Any]) -> PullRequestRecord:
        """Build a record from one ``/api/prs`` item.

        Raises:
            DataValidationError: If required fields are missing or any field
                has an unparseable value.
        """
        if not isinstance(item, dict):
            raise DataValidationError(f"Pull request payload is not an object: payload={item}")

        pr_id = item.get("id")
        state = item.get("state")
        if pr_id is None or not item.get("created_on") or not state:
            raise DataValidationError(
                f"Pull request payload is missing required fields: payload={item}"
            )

        try:
            parsed_state = PullRequestState(str(state).upper())
        except ValueError as exc:
            raise DataValidationError(f"Unknown pull request state '{state}' for PR {pr_id}.") from exc

        days_to_merge = item.get("days_to_merge")
        try:
            return PullRequestRecord(
                id=int(pr_id),
                title=str(item.get("title") or ""),
                state=parsed_state,
                link=str(item.get("link") or ""),
                created_on=self._parse_datetime(item["created_on"]),
                comments=max(0, int(item.get("comments") or 0)),
                commits=max(0, int(item.get("commits") or 0)),
                merged_on=self._parse_datetime(item.get("merged_on")),
                days_to_merge=float(days_to_merge) if days_to_merge is not None else None,
                target_branch=item.get("target_branch") or None,
                source_branch=item.get("source_branch") or None,
                merged_by=item.get("merged_by") or None,
            )
        except (TypeError, ValueError) as exc:
            raise DataValidationError(
                f"Pull request payload has invalid values: payload={item}"
            ) from exc

    @staticmethod
    def _pull_request_params(
        author: str,
        from_date: date,
        to_date: date,
        repo: str,
        state: Optional[str],
        target_branch: Optional[str],
    ) -> Dict[str, Any]:
        """Build ``/api/prs`` query parameters, omitting unset filters."""
        params: Dict[str, Any] = {
            "author": author,
            "from": from_date.isoformat(),
            "to": to_date.isoformat(),
            "repo": repo,
        }
        if state:
            params["state"] = state
        if target_branch:
            params["target_branch"] = target_branch
        return params

    def list_pull_requests(
        self,
        author: str,
        from_date: date,
        to_date: date,
        repo: str,
        state: Optional[str] = None,
        target_branch: Optional[str] = None,
    ) -> List[PullRequestRecord]:
        """List pull requests authored by a member in one repository.

        ``state`` and ``target_branch`` are only sent when provided.

        Raises:
            ApiError: If the request fails or any record is malformed.
        """
        params = self._pull_request_params(author, from_date, to_date, repo, state, target_branch)

        try:
            records = [self._parse_pull_request(item) for item in self._get_list("prs", params=params)]
        except DataValidationError as exc:
            raise ApiError(f"Failed to fetch PRs for {repo}: {exc}") from exc

        logger.debug("Fetched pull requests", extra={"repo": repo, "count": len(records)})
        return records

    def download_report(
        self,
        author: str,
        from_date: date,
        to_date: date,
        repo: str,
        state: Optional[str] = None,
        target_branch: Optional[str] = None,
    ) -> bytes:
        """Download the service-generated report for one repository.

        Takes the same filters as :meth:`list_pull_requests` and returns the
        raw ``/api/prs/report`` response body.

        Raises:
            ApiError: If the request fails or the body is empty.
        """
        params = self._pull_request_params(author, from_date, to_date, repo, state, target_branch)
        response = self._get("prs/report", params=params, headers={"Accept": "*/*"})

        content = response.content
        if not content:
            raise ApiError(f"PR service returned an empty report for {repo}.")

        logger.debug("Downloaded service report", extra={"repo": repo, "bytes": len(content)})
        return content

    def fetch_pull_requests(
        self,
        author: str,
        from_date: date,
        to_date: date,
        repositories: Sequence[str],
        state: Optional[str] = None,
        target_branch: Optional[str] = None,
    ) -> List[PullRequestRecord]:
        """Fetch pull requests across several repositories concurrently.

        One request is issued per repository. Results are concatenated in the
        order the repositories were given. Any failing repository aborts the
        whole fetch with a single ``ApiError``; no partial list is returned.
        """
        if not repositories:
            return []

        max_workers = min(self._MAX_PARALLEL_REPOSITORIES, len(repositories))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(
                    self.list_pull_requests,
                    author=author,
                    from_date=from_date,
                    to_date=to_date,
                    repo=repo,
                    state=state,
                    target_branch=target_branch,
                )
                for repo in repositories
            ]

            all_records: List[PullRequestRecord] = []
            for repo, future in zip(repositories, futures):
                try:
                    all_records.extend(future.result())
                except ApiError:
                    for pending in futures:
                        pending.cancel()
                    logger.error("Pull request fetch failed", extra={"repo": repo})
                    raise

        logger.info(
            "Fetched pull requests across repositories",
            extra={"repositories": len(repositories), "prs_total": len(all_records)},
        )
        return all_records
