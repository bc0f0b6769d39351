"""
Jira REST client
----------------
Fetches single issues, searches with JQL and creates issues through the
Jira REST API (``<base>/rest/api/<version>/...``).

Jira does not signal domain errors reliably through HTTP status codes, so
every response body is first checked for Jira's error envelope and only
then decoded as the expected payload.

Authentication
--------------
HTTP basic auth with a username (or account email) and a password or API
token, sent on every request. ``get_client()`` can read these from the
environment:
        JIRA_BASE_URL    https://myorg.atlassian.net
        JIRA_USER        me@example.com   (JIRA_USER_EMAIL is accepted too)
        JIRA_API_TOKEN   <token from https://id.atlassian.com/manage-profile/security/api-tokens>
        JIRA_API_VERSION 2 (optional)

Dependencies:
    uv add requests pydantic
"""
#to avoid having to consider forward declarations, the below line must be first line in the file
from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from getpass import getpass
from typing import Any, TypeVar
from urllib.parse import quote_plus, urlsplit

import requests
from requests.auth import HTTPBasicAuth

from jira_rest_client.jira_errors import PARSE_ERRORS, ConstructionError, DecodeError, classify_payload
from jira_rest_client.jira_issue import Issue, IssueList, text_to_adf

__all__ = ["JiraClient", "get_client", "DEFAULT_API_VERSION"]

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2"

T = TypeVar("T")

# requests raises these while preparing a request with an unusable URL
_URL_ERRORS = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
)


class JiraClient:
    """
    Args:
        base_url:    Jira instance root URL (e.g. 'https://myorg.atlassian.net')
        username:    User name or account email
        password:    Password or API token
        api_version: REST API version used in the path prefix. Defaults to "2"
        session:     Transport to send requests with. A new requests.Session is
                     created (and owned by the client) when omitted
        timeout:     Passed through to the transport on every send. None means
                     no limit is imposed by this library

    Notes on usage:
        The client holds no state that changes between calls, so one instance
        can serve concurrent callers as long as the session allows it.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        api_version: str = DEFAULT_API_VERSION,
        session: requests.Session | None = None,
        timeout: float | tuple[float, float] | None = None,
    ) -> None:
        self._base_url = base_url
        self._username = username
        self._auth = HTTPBasicAuth(username, password)
        self._api_version = str(api_version)
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def username(self) -> str:
        return self._username

    @property
    def api_version(self) -> str:
        return self._api_version

    def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> JiraClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<JiraClient base_url={self._base_url!r} user={self._username!r} api_version={self._api_version}>"

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        #base may or may not end in "/", path may or may not start with one
        return f"{self._base_url.rstrip('/')}/rest/api/{self._api_version}/{path.lstrip('/')}"

    def build_request(self, method: str, path: str, body: Any = None) -> requests.PreparedRequest:
        """
        Args:
            method: HTTP method, e.g. "GET"
            path:   Path relative to the API prefix, e.g. "issue/PROJ-1"
            body:   JSON-serializable request body, or None

        Returns:
            A request prepared by the session, carrying basic auth. No I/O
            happens here.

        Raises:
            ConstructionError: If the base URL cannot form a valid request target.
        """
        url = self._url(path)
        parts = urlsplit(self._base_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConstructionError(f"Invalid Jira base URL: {self._base_url!r}")

        headers = {"Accept": "application/json"}
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(body)

        request = requests.Request(method.upper(), url, headers=headers, data=data, auth=self._auth)
        try:
            # session.prepare_request merges the session's headers, cookies and auth
            return self._session.prepare_request(request)
        except _URL_ERRORS as exc:
            raise ConstructionError(f"Cannot build request for {url!r}: {exc}") from exc

    # ------------------------------------------------------------------
    # Sending and interpreting
    # ------------------------------------------------------------------

    def _send(self, prepared: requests.PreparedRequest) -> requests.Response:
        # same environment merge Session.request does (proxies, CA bundle)
        settings = self._session.merge_environment_settings(prepared.url, {}, None, None, None)
        logger.debug("Sending %s %s", prepared.method, prepared.url)
        response = self._session.send(prepared, timeout=self._timeout, **settings)
        logger.debug("Jira responded %s with %d bytes", response.status_code, len(response.content or b""))
        return response

    @staticmethod
    def _interpret(response: requests.Response, decode: Callable[[Any], T]) -> T:
        """
        Notes on usage:
            The body is parsed once. The parsed value is checked for Jira's
            error envelope first and raised as a ServiceError if it has one.
            Only otherwise is it decoded with ``decode``; a body that fits
            neither (or is not JSON) raises DecodeError.
        """
        body = response.content or b""
        try:
            payload = json.loads(body)
        except PARSE_ERRORS as exc:
            raise DecodeError(
                f"Jira response is not JSON (HTTP {response.status_code})", response.status_code
            ) from exc

        is_error, service_error = classify_payload(payload, response.status_code)
        if is_error:
            raise service_error

        try:
            return decode(payload)
        except DecodeError as exc:
            exc.status_code = response.status_code
            raise

    def _call(self, method: str, path: str, decode: Callable[[Any], T], body: Any = None) -> T:
        prepared = self.build_request(method, path, body)
        response = self._send(prepared)
        return self._interpret(response, decode)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_issue(self, key: str) -> Issue:
        """Fetch a single Jira issue by key (e.g. 'PROJ-42').

        Raises:
            ServiceError:   Jira reported an error, e.g. the issue does not exist.
            DecodeError:    The response was not an issue.
            TransportError: The request could not be sent.
        """
        return self._call("GET", f"issue/{key}", Issue.from_dict)

    def search_issues(self, jql: str) -> IssueList:
        """
        Args:
            jql: JQL query, e.g. 'project = PROJ AND status = "In Progress"'

        Returns:
            The single page of results Jira returns, in Jira's order. A query
            matching nothing gives total 0 and no issues, not an error.
        """
        return self._call("GET", f"search?jql={quote_plus(jql)}", IssueList.from_dict)

    def create_issue(self, issue: Issue) -> Issue:
        """Create a new Jira issue.

        Only fields holding a value are sent. Jira answers with a stub, so
        the returned Issue has id, key and self_url; fields are not echoed
        back and must not be relied on.
        """
        body = issue.to_dict()
        fields = body["fields"]
        if self._api_version == "3" and "description" in fields:
            # Jira Cloud v3 rejects plain-text descriptions
            fields["description"] = text_to_adf(fields["description"])
        return self._call("POST", "issue", Issue.from_dict, body)


# ---------------------------------------------------------------------------
# Get client
# ---------------------------------------------------------------------------

def get_client(*, interactive: bool = False, **kwargs: Any) -> JiraClient:
    """Return a JiraClient configured from the environment.

    If "interactive = True" and any variable is missing, the user will be
    prompted. Extra keyword arguments go to the JiraClient constructor.

    Environment variables:
        JIRA_BASE_URL:    Base URL of the Jira instance.
        JIRA_USER:        User name or account email (JIRA_USER_EMAIL also works).
        JIRA_API_TOKEN:   Password or API token.
        JIRA_API_VERSION: Optional REST API version, "2" by default.
    """
    base_url = os.environ.get("JIRA_BASE_URL", "")
    username = os.environ.get("JIRA_USER") or os.environ.get("JIRA_USER_EMAIL", "")
    api_token = os.environ.get("JIRA_API_TOKEN", "")
    kwargs.setdefault("api_version", os.environ.get("JIRA_API_VERSION") or DEFAULT_API_VERSION)

    if interactive:
        if not base_url:
            base_url = input("Jira base URL (e.g. https://myorg.atlassian.net): ").strip()
        if not username:
            username = input("Jira user: ").strip()
        if not api_token:
            api_token = getpass("Jira API token: ")
    else:
        #collects the missing fields and raises an error alerting to the missing values
        missing = [name for name, val in [
            ("JIRA_BASE_URL", base_url),
            ("JIRA_USER", username),
            ("JIRA_API_TOKEN", api_token),
        ] if not val]
        if missing:
            raise EnvironmentError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Set them or call get_client(interactive=True)."
            )

    return JiraClient(base_url, username, api_token, **kwargs)
