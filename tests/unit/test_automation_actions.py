"""
Unit tests for automation action reads.

Tests cover decoding of the params union by __typename, flattening
into Terraform attribute blocks, and unknown variants.
"""

from typing import Any

import pytest
import responses

from wiz_provider.automation_actions import (
    AutomationAction,
    EmailActionParams,
    ServiceNowActionParams,
    UnknownActionParams,
    WebhookActionParams,
    flatten_automation_action,
    read_automation_action,
)
from wiz_provider.context import RequestContext
from wiz_provider.diagnostics import Severity
from wiz_provider.session import ProviderSession

WIZ_URL = "https://api.us17.app.wiz.io/graphql"


def action_payload(params: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "id": "aa-1",
        "createdAt": "2024-03-01T10:00:00Z",
        "name": "Notify security",
        "type": "EMAIL",
        "isAccessibleToAllProjects": False,
        "project": {"id": "p-1"},
        "params": params,
    }


class TestParamsDecoding:
    """Tests for params union decoding."""

    def test_email_params(self) -> None:
        action = AutomationAction.model_validate(
            action_payload(
                {
                    "__typename": "EmailAutomationActionParams",
                    "note": "see attached",
                    "to": ["sec@example.com"],
                    "cc": None,
                    "attachEvidenceCSV": True,
                }
            )
        )

        assert isinstance(action.params, EmailActionParams)
        assert action.params.to == ["sec@example.com"]
        assert action.params.cc == []
        assert action.params.attach_evidence_csv is True

    def test_webhook_params(self) -> None:
        action = AutomationAction.model_validate(
            action_payload(
                {
                    "__typename": "WebhookAutomationActionParams",
                    "url": "https://hooks.example.com/wiz",
                    "body": "{}",
                }
            )
        )

        assert isinstance(action.params, WebhookActionParams)
        assert action.params.url == "https://hooks.example.com/wiz"

    def test_unknown_variant(self) -> None:
        action = AutomationAction.model_validate(
            action_payload({"__typename": "PagerDutyAutomationActionParams", "key": "x"})
        )

        assert isinstance(action.params, UnknownActionParams)
        assert action.params.typename == "PagerDutyAutomationActionParams"

    def test_null_params(self) -> None:
        action = AutomationAction.model_validate(action_payload(None))

        assert action.params is None

    def test_secrets_excluded_from_dump(self) -> None:
        params = ServiceNowActionParams(
            base_url="https://acme.service-now.com",
            user="wiz",
            password="hunter2",
            client_secret="s3cret",
        )

        dumped = params.model_dump()

        assert "password" not in dumped
        assert "client_secret" not in dumped
        assert params.to_attributes()["password"] == "hunter2"


class TestFlatten:
    """Tests for flatten_automation_action()."""

    @pytest.mark.parametrize(
        ("params", "block_name"),
        [
            (
                {"__typename": "SlackMessageAutomationActionParams", "url": "u", "channel": "#sec"},
                "slack_params",
            ),
            (
                {
                    "__typename": "AwsMessageAutomationActionParams",
                    "snsTopicARN": "arn:aws:sns:us-east-1:123456789012:wiz",
                },
                "aws_sns_params",
            ),
            (
                {"__typename": "JiraAutomationActionParams", "serverUrl": "https://jira"},
                "jira_params",
            ),
        ],
    )
    def test_block_per_variant(self, params: dict[str, Any], block_name: str) -> None:
        attributes = flatten_automation_action(
            AutomationAction.model_validate(action_payload(params))
        )

        assert len(attributes[block_name]) == 1

    def test_aws_attributes(self) -> None:
        attributes = flatten_automation_action(
            AutomationAction.model_validate(
                action_payload(
                    {
                        "__typename": "AwsMessageAutomationActionParams",
                        "snsTopicARN": "arn:aws:sns:us-east-1:123456789012:wiz",
                        "accessMethod": "ASSUME_CONNECTOR_ROLE",
                        "customerRoleARN": None,
                    }
                )
            )
        )

        assert attributes["aws_sns_params"] == [
            {
                "sns_topic_arn": "arn:aws:sns:us-east-1:123456789012:wiz",
                "body": "",
                "access_method": "ASSUME_CONNECTOR_ROLE",
                "customer_role_arn": "",
            }
        ]

    def test_unknown_variant_has_no_block(self) -> None:
        attributes = flatten_automation_action(
            AutomationAction.model_validate(
                action_payload({"__typename": "PagerDutyAutomationActionParams"})
            )
        )

        assert attributes == {
            "id": "aa-1",
            "name": "Notify security",
            "type": "EMAIL",
            "is_accessible_to_all_projects": False,
            "project_id": "p-1",
        }


class TestReadAutomationAction:
    """Tests for read_automation_action()."""

    @responses.activate
    def test_reads_email_action(
        self,
        request_context: RequestContext,
        provider_session: ProviderSession,
    ) -> None:
        _ = responses.add(
            responses.POST,
            WIZ_URL,
            json={
                "data": {
                    "automationAction": action_payload(
                        {
                            "__typename": "EmailAutomationActionParams",
                            "note": "n",
                            "to": ["sec@example.com"],
                            "cc": ["ops@example.com"],
                            "attachEvidenceCSV": False,
                        }
                    )
                }
            },
        )

        diags, attributes = read_automation_action(request_context, provider_session, "aa-1")

        assert diags == []
        assert attributes is not None
        assert attributes["email_params"] == [
            {
                "note": "n",
                "to": ["sec@example.com"],
                "cc": ["ops@example.com"],
                "attach_evidence_csv": False,
            }
        ]

    @responses.activate
    def test_deleted_action(
        self,
        request_context: RequestContext,
        provider_session: ProviderSession,
    ) -> None:
        _ = responses.add(responses.POST, WIZ_URL, json={"data": {"automationAction": None}})

        diags, attributes = read_automation_action(request_context, provider_session, "aa-gone")

        assert diags == []
        assert attributes is None

    @responses.activate
    def test_server_error_is_reported(
        self,
        request_context: RequestContext,
        provider_session: ProviderSession,
    ) -> None:
        _ = responses.add(responses.POST, WIZ_URL, body="unavailable", status=503)

        diags, attributes = read_automation_action(request_context, provider_session, "aa-1")

        assert attributes is None
        assert len(diags) == 1
        assert diags[0].summary == "HTTP Response (503)"

    @responses.activate
    def test_warnings_keep_the_action(
        self,
        request_context: RequestContext,
        provider_session: ProviderSession,
    ) -> None:
        _ = responses.add(
            responses.POST,
            WIZ_URL,
            json={
                "data": {"automationAction": action_payload(None)},
                "errors": [
                    {"message": "Action type is deprecated", "extensions": {"severity": "WARNING"}}
                ],
            },
        )

        diags, attributes = read_automation_action(request_context, provider_session, "aa-1")

        assert attributes is not None
        assert attributes["id"] == "aa-1"
        assert [d.severity for d in diags] == [Severity.WARNING]
