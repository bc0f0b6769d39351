"""Client library for the Jira REST API: get, search and create issues."""

import logging

from jira_rest_client.jira_errors import (
    ConstructionError,
    DecodeError,
    JiraError,
    ServiceError,
    TransportError,
    classify,
    classify_payload,
)
from jira_rest_client.jira_impl import JiraClient, get_client
from jira_rest_client.jira_issue import (
    Issue,
    IssueFields,
    IssueList,
    IssueType,
    Priority,
    Project,
    User,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "JiraClient",
    "get_client",
    "Issue",
    "IssueFields",
    "IssueList",
    "IssueType",
    "Priority",
    "Project",
    "User",
    "JiraError",
    "ConstructionError",
    "DecodeError",
    "ServiceError",
    "TransportError",
    "classify",
    "classify_payload",
]
