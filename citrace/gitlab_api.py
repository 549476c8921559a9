"""GitLab REST API access for job traces.

Only the two read calls needed to follow a job are implemented:

- GET /projects/:id/jobs/:job_id        job metadata (status, name)
- GET /projects/:id/jobs/:job_id/trace  full trace text known so far

Requests are made once per call with a fixed timeout. Failures are mapped
onto the fetch error types in citrace.trace.errors; retrying transient
failures is left to the polling loop.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
import urllib3

from citrace.trace.errors import (
    FetchError,
    JobNotFoundError,
    TransientFetchError,
    UnauthorizedError,
)
from citrace.trace.models import JobReference

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = {408, 429}


@dataclass
class GitLabConfig:
    """GitLab API configuration."""
    base_url: str = "https://gitlab.com"
    token: Optional[str] = None
    timeout: float = 10.0
    verify_ssl: bool = True
    api_prefix: str = "/api/v4"


class GitLabAPI:
    """Minimal GitLab API client for reading jobs and their traces."""

    ERROR_BODY_PREVIEW_LIMIT = 500
    USER_AGENT = "citrace"

    def __init__(
        self,
        config: Optional[GitLabConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or GitLabConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.trust_env = True
        self.headers = {"User-Agent": self.USER_AGENT}
        if self.config.token:
            self.headers["PRIVATE-TOKEN"] = self.config.token

        if not self.config.verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def _job_path(self, ref: JobReference) -> str:
        return f"{self.config.api_prefix}/projects/{ref.api_project_id}/jobs/{ref.job_id}"

    def _summarize_response_error(self, response: requests.Response) -> str:
        """Format status, URL and a truncated body for error messages."""
        body_preview = (response.text or "").strip()
        if len(body_preview) > self.ERROR_BODY_PREVIEW_LIMIT:
            body_preview = body_preview[:self.ERROR_BODY_PREVIEW_LIMIT] + "..."
        summary = f"HTTP {response.status_code} {response.reason or ''}".rstrip()
        summary += f" for {response.url}"
        if body_preview:
            summary += f": {body_preview}"
        return summary

    def _request(self, ref: JobReference, path: str, accept: str) -> requests.Response:
        """GET ``path`` and map every failure onto a FetchError subclass."""
        url = f"{self.base_url}{path}"
        headers = dict(self.headers)
        headers["Accept"] = accept

        logger.debug("Request: GET %s", url)
        try:
            response = self.session.get(
                url,
                headers=headers,
                timeout=self.config.timeout,
                verify=self.config.verify_ssl,
            )
        except requests.exceptions.Timeout as e:
            raise TransientFetchError(
                f"Request timed out after {self.config.timeout}s: {url}", job_id=ref.job_id
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise TransientFetchError(
                f"Connection error for {url}: {e}", job_id=ref.job_id
            ) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Request failed for {url}: {e}", job_id=ref.job_id) from e

        logger.debug("Response status: %s", response.status_code)

        status = response.status_code
        if status < 400:
            return response

        summary = self._summarize_response_error(response)
        if status in (401, 403):
            raise UnauthorizedError(
                f"Not authorized to read job {ref.job_id} in {ref.project_ref}. {summary}",
                job_id=ref.job_id,
            )
        if status == 404:
            raise JobNotFoundError(
                f"Job {ref.job_id} not found in {ref.project_ref}. {summary}",
                job_id=ref.job_id,
            )
        if status >= 500 or status in TRANSIENT_STATUS_CODES:
            raise TransientFetchError(f"Server error. {summary}", job_id=ref.job_id)
        raise FetchError(f"API request rejected. {summary}", job_id=ref.job_id)

    def get_job(self, ref: JobReference) -> Dict[str, Any]:
        """Get job metadata.

        Returns:
            Decoded job object (``status``, ``name``, ``id``, ...)

        Raises:
            FetchError: On any failure; see module docstring for subclasses
        """
        response = self._request(ref, self._job_path(ref), accept="application/json")
        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            preview = (response.text or "")[:self.ERROR_BODY_PREVIEW_LIMIT]
            raise FetchError(
                f"Invalid JSON in job response. Body preview: {preview}", job_id=ref.job_id
            ) from e
        if not isinstance(payload, dict):
            raise FetchError("Invalid job response format", job_id=ref.job_id)
        return payload

    def get_job_trace(self, ref: JobReference) -> bytes:
        """Get the full trace of a job as raw bytes (empty if it has not started)."""
        response = self._request(ref, f"{self._job_path(ref)}/trace", accept="text/plain")
        return response.content or b""
