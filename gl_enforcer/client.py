"""GitLab API client with pagination and retry support."""

from __future__ import annotations

import logging
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any

import requests

from gl_enforcer.exceptions import NotFoundError, RemoteError
from gl_enforcer.models import (
    API_V4,
    DEFAULT_MAX_RETRIES,
    PER_PAGE,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF_FACTOR,
    RETRYABLE_STATUS_CODES,
)


def encode_group_name(name: str) -> str:
    """Percent-encode a group name for use as a path id, including dots."""
    return urllib.parse.quote(name, safe="").replace(".", "%2E")


@dataclass
class PageInfo:
    """Pagination headers of a list response."""

    page: int
    total_pages: int
    next_page: int | None

    @property
    def has_next(self) -> bool:
        if self.total_pages <= 1:
            return False
        return self.page < self.total_pages

    @classmethod
    def from_response(cls, resp: requests.Response, page: int) -> PageInfo:
        total = resp.headers.get("x-total-pages")
        next_page = resp.headers.get("x-next-page")
        return cls(
            page=page,
            total_pages=int(total) if total else (page + 1 if next_page else page),
            next_page=int(next_page) if next_page else None,
        )


class GitLabClient:
    """Thin wrapper around GitLab REST API v4 with pagination support and retry logic."""

    def __init__(self, base_url: str, token: str, max_retries: int = DEFAULT_MAX_RETRIES):
        self.base_url = base_url.rstrip("/")
        self.api_url = f"{self.base_url}{API_V4}"
        self.session = requests.Session()
        self.session.headers.update(
            {
                "PRIVATE-TOKEN": token,
                "Content-Type": "application/json",
            }
        )
        self.max_retries = max_retries
        self.logger = logging.getLogger("gl-enforcer")

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make an HTTP request with retry logic for transient failures."""
        url = f"{self.api_url}{endpoint}"
        kwargs.setdefault("timeout", REQUEST_TIMEOUT)
        last_exception: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                self.logger.debug(
                    f"{method.upper()} {url} {kwargs.get('params', '')} {kwargs.get('json', '')} "
                    f"(attempt {attempt + 1}/{self.max_retries + 1})"
                )
                resp = self.session.request(method, url, **kwargs)

                # Retry on rate limit or server errors
                if resp.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                    wait_time = self._calculate_backoff(resp, attempt)
                    self.logger.warning(f"Retryable error {resp.status_code}, waiting {wait_time:.1f}s before retry")
                    time.sleep(wait_time)
                    continue

                if resp.status_code >= 400 and resp.status_code != 404:
                    self.logger.error(f"API error {resp.status_code}: {resp.text[:500]}")
                resp.raise_for_status()
                return resp

            except requests.exceptions.ConnectionError as e:
                last_exception = e
                if attempt < self.max_retries:
                    wait_time = RETRY_BACKOFF_FACTOR * (2**attempt)
                    self.logger.warning(f"Connection error, retrying in {wait_time:.1f}s: {e}")
                    time.sleep(wait_time)
                    continue
                raise

        if last_exception:
            raise last_exception
        raise RuntimeError("Unexpected retry loop exit")

    def _calculate_backoff(self, resp: requests.Response, attempt: int) -> float:
        """Calculate backoff time, respecting Retry-After header for 429s."""
        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    pass  # Fall through to exponential backoff
        return RETRY_BACKOFF_FACTOR * (2**attempt)

    def _call(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Like _request, but translates transport failures into RemoteError/NotFoundError."""
        try:
            return self._request(method, endpoint, **kwargs)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 404:
                raise NotFoundError(f"{method.upper()} {endpoint}: not found") from e
            raise RemoteError(f"{method.upper()} {endpoint} failed: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise RemoteError(f"{method.upper()} {endpoint} failed: {e}") from e

    def _call_json(self, method: str, endpoint: str, **kwargs) -> Any:
        """Like _call, but also decodes the body."""
        return self._decode(self._call(method, endpoint, **kwargs), method, endpoint)

    def _decode(self, resp: requests.Response, method: str, endpoint: str) -> Any:
        # A proxy error page can arrive with a 200
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteError(
                f"{method.upper()} {endpoint} returned an invalid JSON body", status_code=resp.status_code
            ) from e

    def get_page(self, endpoint: str, page: int, params: dict | None = None) -> tuple[list[dict], PageInfo]:
        """Fetch a single page of a paginated endpoint."""
        params = dict(params or {})
        params.setdefault("per_page", PER_PAGE)
        params["page"] = page
        resp = self._call("GET", endpoint, params=params)
        return self._decode(resp, "GET", endpoint), PageInfo.from_response(resp, page)

    # -- Groups --

    def get_group(self, name: str) -> dict:
        return self._call_json("GET", f"/groups/{encode_group_name(name)}")

    def list_subgroups(self, group: int | str, page: int = 1) -> tuple[list[dict], PageInfo]:
        group_id = group if isinstance(group, int) else encode_group_name(group)
        return self.get_page(f"/groups/{group_id}/subgroups", page)

    def list_group_projects(
        self, group_id: int, page: int = 1, include_subgroups: bool = True
    ) -> tuple[list[dict], PageInfo]:
        params = {"include_subgroups": "true" if include_subgroups else "false"}
        return self.get_page(f"/groups/{group_id}/projects", page, params=params)

    # -- Projects --

    def get_project(self, project_id: int) -> dict:
        return self._call_json("GET", f"/projects/{project_id}")

    def edit_project(self, project_id: int, settings: dict) -> dict:
        return self._call_json("PUT", f"/projects/{project_id}", json=settings)

    def get_approval_configuration(self, project_id: int) -> dict:
        return self._call_json("GET", f"/projects/{project_id}/approvals")

    def change_approval_configuration(self, project_id: int, settings: dict) -> dict:
        return self._call_json("POST", f"/projects/{project_id}/approvals", json=settings)

    def list_approval_rules(self, project_id: int) -> list[dict]:
        return self._call_json("GET", f"/projects/{project_id}/approval_rules")

    def create_approval_rule(self, project_id: int, rule: dict) -> dict:
        return self._call_json("POST", f"/projects/{project_id}/approval_rules", json=rule)

    def update_approval_rule(self, project_id: int, rule_id: int, rule: dict) -> dict:
        return self._call_json("PUT", f"/projects/{project_id}/approval_rules/{rule_id}", json=rule)

    # -- Branches --

    def get_branch(self, project_id: int, name: str) -> dict:
        encoded = urllib.parse.quote(name, safe="")
        return self._call_json("GET", f"/projects/{project_id}/repository/branches/{encoded}")

    def create_branch(self, project_id: int, name: str, ref: str) -> dict:
        return self._call_json(
            "POST", f"/projects/{project_id}/repository/branches", json={"branch": name, "ref": ref}
        )

    def protect_branch(self, project_id: int, name: str, push_access_level: int, merge_access_level: int) -> dict:
        return self._call_json(
            "POST",
            f"/projects/{project_id}/protected_branches",
            json={
                "name": name,
                "push_access_level": push_access_level,
                "merge_access_level": merge_access_level,
            },
        )

    def unprotect_branch(self, project_id: int, name: str) -> None:
        encoded = urllib.parse.quote(name, safe="")
        self._call("DELETE", f"/projects/{project_id}/protected_branches/{encoded}")
