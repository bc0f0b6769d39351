"""Unit tests for decoding and encoding the Jira issue records."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from jira_rest_client import (
    DecodeError,
    Issue,
    IssueFields,
    IssueList,
    IssueType,
    Priority,
    Project,
    User,
)
from jira_rest_client.jira_issue import adf_to_text, text_to_adf

#-------------------- tests for decoding --------------------

def test_issue_absent_fields_decode_to_none():
    issue = Issue.from_dict({"id": "1", "key": "TEST-1"})

    assert issue.self_url is None
    assert issue.fields == IssueFields()
    assert issue.fields.summary is None
    assert issue.fields.priority is None
    assert issue.fields.labels == []


def test_issue_null_fields_decode_to_none():
    issue = Issue.from_dict({"id": "1", "key": "TEST-1", "fields": {"assignee": None, "labels": None}})

    assert issue.fields.assignee is None
    assert issue.fields.labels == []


@pytest.mark.parametrize("payload", [
    {"key": "TEST-1"},
    {"id": "1"},
    {"id": "", "key": "TEST-1"},
    {},
])
def test_issue_without_id_or_key_raises_decode_error(payload):
    with pytest.raises(DecodeError):
        Issue.from_dict(payload)


def test_issue_non_object_raises_decode_error():
    with pytest.raises(DecodeError):
        Issue.from_dict(["TEST-1"])


def test_nested_type_mismatch_names_the_field():
    payload = {"id": "1", "key": "TEST-1", "fields": {"reporter": {"active": "yes"}}}

    with pytest.raises(DecodeError) as exc_info:
        Issue.from_dict(payload)

    assert "fields.reporter.active" in str(exc_info.value)


def test_user_decodes_wire_names():
    user = User.from_dict({
        "name": "jdoe",
        "accountId": "5b10a2844c20165700ede21g",
        "emailAddress": "jdoe@example.com",
        "displayName": "Jane Doe",
        "avatarUrls": {"48x48": "https://example.com/a.png"},
        "active": True,
    })

    assert user.account_id == "5b10a2844c20165700ede21g"
    assert user.email_address == "jdoe@example.com"
    assert user.display_name == "Jane Doe"
    assert user.avatar_urls == {"48x48": "https://example.com/a.png"}
    assert user.active is True


def test_created_at_parses_jira_timestamp():
    fields = IssueFields.from_dict({"created": "2024-03-01T09:15:27.000+0100"})

    created = fields.created_at

    assert (created.year, created.month, created.day, created.hour) == (2024, 3, 1, 9)
    assert created.utcoffset() == timedelta(hours=1)


def test_created_at_is_none_when_absent():
    assert IssueFields().created_at is None


def test_adf_description_is_flattened_to_text():
    # API v3 returns descriptions as Atlassian Document Format
    adf = {
        "type": "doc",
        "version": 1,
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": "line 1"}]},
            {"type": "paragraph", "content": [{"type": "text", "text": "line 2"}]},
        ],
    }

    fields = IssueFields.from_dict({"description": adf})

    assert fields.description == "line 1\nline 2"


def test_issue_list_defaults_pagination_to_zero():
    result = IssueList.from_dict({"issues": []})

    assert (result.start_at, result.max_results, result.total) == (0, 0, 0)


def test_issue_list_rejects_boolean_total():
    with pytest.raises(DecodeError):
        IssueList.from_dict({"total": True, "issues": []})


def test_issue_list_bad_entry_raises_decode_error():
    with pytest.raises(DecodeError) as exc_info:
        IssueList.from_dict({"total": 1, "issues": [{"summary": "no key"}]})

    assert "issues.0" in str(exc_info.value)

#-------------------- tests for encoding --------------------

def test_to_dict_omits_empty_fields():
    issue = Issue(fields=IssueFields(
        summary="Test issue",
        description="",
        labels=[],
        project=Project(key="TEST"),
        issue_type=IssueType(name="Bug"),
        priority=Priority(name="Major"),
    ))

    assert issue.to_dict() == {
        "fields": {
            "summary": "Test issue",
            "project": {"key": "TEST"},
            "issuetype": {"name": "Bug"},
            "priority": {"name": "Major"},
        }
    }


def test_to_dict_keeps_label_order():
    fields = IssueFields(labels=["b", "a", "c"])

    assert fields.to_dict() == {"labels": ["b", "a", "c"]}


def test_empty_issue_still_sends_fields_object():
    assert Issue().to_dict() == {"fields": {}}


def test_to_dict_keeps_false_flags():
    # False is a value, not an absent field
    assert IssueType(name="Bug", subtask=False).to_dict() == {"name": "Bug", "subtask": False}


def test_decoded_issue_is_not_mutable():
    issue = Issue.from_dict({"id": "1", "key": "TEST-1"})

    with pytest.raises(ValidationError):
        issue.key = "TEST-2"

#-------------------- tests for text_to_adf --------------------

def test_text_to_adf():
    expected_adf = {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"text": "testing adf formatting", "type": "text"}],
            }
        ],
    }

    assert text_to_adf("testing adf formatting") == expected_adf


def test_text_to_adf_one_paragraph_per_line():
    adf = text_to_adf("line 1\n\nline 3")

    assert [p["content"] for p in adf["content"]] == [
        [{"type": "text", "text": "line 1"}],
        [],
        [{"type": "text", "text": "line 3"}],
    ]
    # flattening gives the non-empty lines back
    assert adf_to_text(adf) == "line 1\nline 3"


def test_text_to_adf_non_string_input():
    with pytest.raises(TypeError):
        text_to_adf(12345)

#-------------------- tests for adf_to_text --------------------

def test_adf_to_text_keeps_document_order_across_nesting():
    adf = {"type": "doc", "content": [
        {"type": "bulletList", "content": [
            {"type": "listItem", "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "first"}]},
            ]},
            {"type": "listItem", "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "second"}]},
            ]},
        ]},
        {"type": "paragraph", "content": [{"type": "text", "text": "third"}]},
        {"type": "rule"},
    ]}

    assert adf_to_text(adf) == "first\nsecond\nthird"


@pytest.mark.parametrize("adf", [
    {"type": "doc", "content": 5},
    {"type": "doc", "content": [{"type": "text", "text": 7}, {"type": "text", "text": "ok"}]},
    {"type": "text", "text": 7},
    {"type": "doc", "content": [None]},
])
def test_adf_to_text_rejects_malformed_nodes(adf):
    with pytest.raises(ValueError):
        adf_to_text(adf)


def test_malformed_adf_description_raises_decode_error_not_type_error():
    with pytest.raises(DecodeError) as exc_info:
        IssueFields.from_dict({"description": {"type": "doc", "content": 5}})

    assert "description" in str(exc_info.value)

#-------------------- tests for strict decoding --------------------

def test_numeric_id_is_not_coerced_to_string():
    with pytest.raises(DecodeError):
        Issue.from_dict({"id": 10001, "key": "TEST-1"})


def test_issue_list_keeps_expand():
    result = IssueList.from_dict({"expand": "names,schema", "total": 0, "issues": []})

    assert result.expand == "names,schema"


def test_issue_list_without_issues_array_raises_decode_error():
    with pytest.raises(DecodeError):
        IssueList.from_dict({"total": 0})


def test_records_built_by_caller_need_no_id_or_key():
    # identity is only required on decoded responses
    issue = Issue(fields=IssueFields(summary="New"))

    assert issue.id is None
    assert issue.key is None


def test_records_accept_wire_names_and_python_names():
    assert User(displayName="Jane") == User(display_name="Jane")
