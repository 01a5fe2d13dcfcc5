"""
Wiz automation actions: reading the ``wiz_automation_action`` resource.

An automation action's ``params`` is a GraphQL union. The query selects
``__typename`` alongside the fragments and the payload is decoded straight
into the matching variant model, so no second request or runtime probing
is needed to learn which kind of action was returned. Variants this
provider does not know yet decode to UnknownActionParams instead of
failing the read.
"""

from typing import Annotated, Any, Literal

from pydantic import Discriminator, Field, Tag

from wiz_provider.client import execute
from wiz_provider.context import RequestContext
from wiz_provider.diagnostics import Diagnostics, has_errors, only_graphql_errors
from wiz_provider.logging_config import get_logger, log_with_context
from wiz_provider.models import GraphQLModel, QueryVariables
from wiz_provider.session import ProviderSession

logger = get_logger(__name__)

READ_AUTOMATION_ACTION_QUERY = """query automationAction (
  $id: ID!
){
  automationAction(
    id: $id
  ){
    id
    createdAt
    name
    type
    isAccessibleToAllProjects
    project {
      id
    }
    params {
      __typename
      ... on EmailAutomationActionParams {
        note
        to
        cc
        attachEvidenceCSV
      }
      ... on WebhookAutomationActionParams {
        url
        body
        clientCertificate
      }
      ... on SlackMessageAutomationActionParams {
        url
        note
        channel
      }
      ... on AwsMessageAutomationActionParams {
        snsTopicARN
        body
        accessMethod
        customerRoleARN
      }
      ... on JiraAutomationActionParams {
        serverUrl
        isOnPrem
        onPremTunnelDomain
      }
      ... on ServiceNowAutomationActionParams {
        baseUrl
        user
        password
        clientId
        clientSecret
      }
    }
  }
}"""


class EmailActionParams(GraphQLModel):
    typename: Literal["EmailAutomationActionParams"] = Field(
        default="EmailAutomationActionParams", alias="__typename"
    )
    note: str = ""
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    attach_evidence_csv: bool = Field(default=False, alias="attachEvidenceCSV")

    def to_attributes(self) -> dict[str, Any]:
        return {
            "note": self.note,
            "to": list(self.to),
            "cc": list(self.cc),
            "attach_evidence_csv": self.attach_evidence_csv,
        }


class WebhookActionParams(GraphQLModel):
    typename: Literal["WebhookAutomationActionParams"] = Field(
        default="WebhookAutomationActionParams", alias="__typename"
    )
    url: str = ""
    body: str = ""
    client_certificate: str = Field(default="", exclude=True)

    def to_attributes(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "body": self.body,
            "client_certificate": self.client_certificate,
        }


class SlackActionParams(GraphQLModel):
    typename: Literal["SlackMessageAutomationActionParams"] = Field(
        default="SlackMessageAutomationActionParams", alias="__typename"
    )
    url: str = ""
    note: str = ""
    channel: str = ""

    def to_attributes(self) -> dict[str, Any]:
        return {"url": self.url, "note": self.note, "channel": self.channel}


class AwsSnsActionParams(GraphQLModel):
    typename: Literal["AwsMessageAutomationActionParams"] = Field(
        default="AwsMessageAutomationActionParams", alias="__typename"
    )
    sns_topic_arn: str = Field(default="", alias="snsTopicARN")
    body: str = ""
    access_method: str = ""
    customer_role_arn: str = Field(default="", alias="customerRoleARN")

    def to_attributes(self) -> dict[str, Any]:
        return {
            "sns_topic_arn": self.sns_topic_arn,
            "body": self.body,
            "access_method": self.access_method,
            "customer_role_arn": self.customer_role_arn,
        }


class JiraActionParams(GraphQLModel):
    typename: Literal["JiraAutomationActionParams"] = Field(
        default="JiraAutomationActionParams", alias="__typename"
    )
    server_url: str = ""
    is_on_prem: bool = False
    on_prem_tunnel_domain: str = ""

    def to_attributes(self) -> dict[str, Any]:
        return {
            "server_url": self.server_url,
            "is_on_prem": self.is_on_prem,
            "on_prem_tunnel_domain": self.on_prem_tunnel_domain,
        }


class ServiceNowActionParams(GraphQLModel):
    typename: Literal["ServiceNowAutomationActionParams"] = Field(
        default="ServiceNowAutomationActionParams", alias="__typename"
    )
    base_url: str = ""
    user: str = ""
    password: str = Field(default="", exclude=True)
    client_id: str = ""
    client_secret: str = Field(default="", exclude=True)

    def to_attributes(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "user": self.user,
            "password": self.password,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }


class UnknownActionParams(GraphQLModel):
    typename: str = Field(default="", alias="__typename")

    def to_attributes(self) -> dict[str, Any]:
        return {}


# __typename -> (variant model, Terraform attribute block name)
ACTION_PARAMS_VARIANTS: dict[str, tuple[type[GraphQLModel], str]] = {
    "EmailAutomationActionParams": (EmailActionParams, "email_params"),
    "WebhookAutomationActionParams": (WebhookActionParams, "webhook_params"),
    "SlackMessageAutomationActionParams": (SlackActionParams, "slack_params"),
    "AwsMessageAutomationActionParams": (AwsSnsActionParams, "aws_sns_params"),
    "JiraAutomationActionParams": (JiraActionParams, "jira_params"),
    "ServiceNowAutomationActionParams": (ServiceNowActionParams, "servicenow_params"),
}


def _params_tag(value: Any) -> str:
    if isinstance(value, dict):
        typename = value.get("__typename") or value.get("typename")
    else:
        typename = getattr(value, "typename", None)
    return typename if typename in ACTION_PARAMS_VARIANTS else "unknown"


ActionParams = Annotated[
    Annotated[EmailActionParams, Tag("EmailAutomationActionParams")]
    | Annotated[WebhookActionParams, Tag("WebhookAutomationActionParams")]
    | Annotated[SlackActionParams, Tag("SlackMessageAutomationActionParams")]
    | Annotated[AwsSnsActionParams, Tag("AwsMessageAutomationActionParams")]
    | Annotated[JiraActionParams, Tag("JiraAutomationActionParams")]
    | Annotated[ServiceNowActionParams, Tag("ServiceNowAutomationActionParams")]
    | Annotated[UnknownActionParams, Tag("unknown")],
    Discriminator(_params_tag),
]


class ProjectRef(GraphQLModel):
    id: str = ""


class AutomationAction(GraphQLModel):
    id: str = ""
    created_at: str = ""
    name: str = ""
    type: str = ""
    is_accessible_to_all_projects: bool = False
    project: ProjectRef = Field(default_factory=ProjectRef)
    params: ActionParams | None = None


class ReadAutomationActionPayload(GraphQLModel):
    """Destination for READ_AUTOMATION_ACTION_QUERY."""

    automation_action: AutomationAction = Field(default_factory=AutomationAction)


def flatten_automation_action(action: AutomationAction) -> dict[str, Any]:
    """
    Flatten an automation action into Terraform attributes.

    The params variant becomes a single-element block named after its
    kind (``email_params``, ``webhook_params``, ...).
    """
    attributes: dict[str, Any] = {
        "id": action.id,
        "name": action.name,
        "type": action.type,
        "is_accessible_to_all_projects": action.is_accessible_to_all_projects,
        "project_id": action.project.id,
    }
    if action.params is None:
        return attributes

    variant = ACTION_PARAMS_VARIANTS.get(action.params.typename)
    if variant is None:
        log_with_context(
            logger,
            "warning",
            "Unsupported automation action params type",
            action_id=action.id,
            params_type=action.params.typename,
        )
        return attributes

    _, block_name = variant
    attributes[block_name] = [action.params.to_attributes()]
    return attributes


def read_automation_action(
    ctx: RequestContext,
    session: ProviderSession,
    action_id: str,
) -> tuple[Diagnostics, dict[str, Any] | None]:
    """
    Read a ``wiz_automation_action``.

    Args:
        ctx: Request context
        session: Provider session
        action_id: Automation action ID

    Returns:
        Tuple of (diagnostics, attributes). Attributes are None when the
        action no longer exists.
    """
    if not action_id:
        return [], None

    data = ReadAutomationActionPayload()
    diags = execute(
        ctx,
        session,
        QueryVariables(id=action_id),
        data,
        READ_AUTOMATION_ACTION_QUERY,
        "automation_action",
        "read",
    )

    # The API answers a deleted action with HTTP 200 and a null automationAction
    if not data.automation_action.id and only_graphql_errors(diags):
        log_with_context(
            logger,
            "info",
            "Resource not found, assuming it was deleted outside terraform",
            action_id=action_id,
        )
        return [], None

    if has_errors(diags):
        return diags, None

    return diags, flatten_automation_action(data.automation_action)
