from __future__ import annotations

import logging
from typing import Any

import requests
from requests.utils import quote

from prreminder_core.bitbucket.models import Project, PullRequest, Repository
from prreminder_core.config import ENV_PREFIX
from prreminder_core.errors import ConfigError, FetchError

logger = logging.getLogger(__name__)

API_PATH = "rest/api/1.0/"

PROJECTS_LIMIT = 100
REPOSITORIES_LIMIT = 100
PULL_REQUESTS_LIMIT = 10


class BitbucketClient:
    """A client for the Bitbucket Server REST API 1.0.

    Every listing returns the first page only; ``isLastPage`` is logged but
    never followed.
    """

    def __init__(self, host: str, user: str, password: str, session: requests.Session | None = None):
        if not host:
            raise ConfigError(f"Bitbucket host is required; set bitbucket.host or {ENV_PREFIX}_BITBUCKET_HOST")

        self.api_base_url = host.rstrip("/") + "/" + API_PATH

        self.session = session or requests.Session()
        if user or password:
            self.session.auth = (user, password)
        self.session.headers.update({"Accept": "application/json"})

    def close(self) -> None:
        self.session.close()

    def _get_page(self, endpoint: str, params: dict[str, Any]) -> list[dict]:
        """GET a paged endpoint and return the ``values`` of its first page."""
        url = self.api_base_url + endpoint

        try:
            response = self.session.get(url, params=params)
        except requests.exceptions.RequestException as e:
            logger.debug("Bitbucket request error for %s: %s", endpoint, e)
            raise FetchError(endpoint, str(e)) from e

        if not 200 <= response.status_code < 300:
            raise FetchError(endpoint, _error_message(response), status_code=response.status_code)

        try:
            page = response.json()
        except ValueError as e:
            raise FetchError(endpoint, "response is not valid JSON", status_code=response.status_code) from e

        values = page.get("values") if isinstance(page, dict) else None
        if not isinstance(values, list):
            raise FetchError(endpoint, "unexpected page payload", status_code=response.status_code)
        if not page.get("isLastPage", True):
            logger.debug("%s has more than %s results; only the first page is used", endpoint, params.get("limit"))
        return values

    def get_projects(self, limit: int = PROJECTS_LIMIT) -> list[Project]:
        endpoint = "projects"
        return _parse(endpoint, self._get_page(endpoint, {"limit": limit}), Project)

    def get_repositories(self, project_key: str, limit: int = REPOSITORIES_LIMIT) -> list[Repository]:
        endpoint = f"projects/{quote(project_key, safe='')}/repos"
        return _parse(endpoint, self._get_page(endpoint, {"limit": limit}), Repository)

    def get_pull_requests(
        self, project_key: str, repository_slug: str, limit: int = PULL_REQUESTS_LIMIT
    ) -> list[PullRequest]:
        endpoint = f"projects/{quote(project_key, safe='')}/repos/{quote(repository_slug, safe='')}/pull-requests"
        params = {"limit": limit, "state": "OPEN", "withProperties": "true"}
        return _parse(endpoint, self._get_page(endpoint, params), PullRequest)


def _parse(endpoint: str, values: list[dict], model):
    try:
        return [model.from_api(v) for v in values]
    except (KeyError, TypeError, AttributeError) as e:
        raise FetchError(endpoint, f"unexpected {model.__name__} payload: {e!r}") from e


def _error_message(response: requests.Response) -> str:
    """Extract Bitbucket's ``errors[].message`` list, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or "no response body"

    errors = body.get("errors") if isinstance(body, dict) else None
    if errors:
        return "; ".join(e.get("message", "") for e in errors if isinstance(e, dict))
    return response.text or response.reason or "no response body"
