"""
Wiz users: the ``wiz_users`` data source and the ``wiz_user`` reader.

read_users walks the paged ``users`` connection and flattens every node
into Terraform attribute maps. read_user fetches a single user and treats
a missing user as deleted outside Terraform rather than as an error.
"""

import hashlib
import json

from pydantic import Field

from wiz_provider.client import execute, execute_paged
from wiz_provider.context import RequestContext
from wiz_provider.diagnostics import (
    Diagnostic,
    Diagnostics,
    Severity,
    has_errors,
    only_graphql_errors,
)
from wiz_provider.logging_config import get_logger, log_with_context
from wiz_provider.models import GraphQLModel, PageInfo, QueryVariables
from wiz_provider.session import ProviderSession

logger = get_logger(__name__)

# Authentication sources accepted by the users filter
AUTHENTICATION_SOURCES = ("LEGACY", "MODERN")

DEFAULT_PAGE_SIZE = 50

READ_USERS_QUERY = """query users(
  $first: Int
  $filterBy: UserFilters
  $after: String
){
  users(
    first: $first,
    filterBy: $filterBy,
    after: $after
  ) {
    nodes {
      id
      name
      email
      isSuspended
      identityProvider {
        name
      }
      identityProviderType
      effectiveRole {
        id
        name
        scopes
      }
    }
    pageInfo {
      endCursor
      hasNextPage
    }
    totalCount
  }
}"""

READ_USER_QUERY = """query user(
  $id: ID!
) {
  user(
    id: $id
  ) {
    id
    name
    email
    isSuspended
    identityProviderType
    effectiveAssignedProjects {
      id
    }
    effectiveRole {
      id
      name
      scopes
    }
  }
}"""


class UserFilters(GraphQLModel):
    search: str = ""
    roles: list[str] = Field(default_factory=list, alias="role")
    authentication_source: str = Field(default="", alias="source")


class UserRole(GraphQLModel):
    id: str = ""
    name: str = ""
    description: str = ""
    is_project_scoped: bool = False
    scopes: list[str] = Field(default_factory=list)


class IdentityProvider(GraphQLModel):
    id: str = ""
    name: str = ""


class ProjectRef(GraphQLModel):
    id: str = ""


class User(GraphQLModel):
    id: str = ""
    name: str = ""
    email: str = ""
    is_suspended: bool = False
    identity_provider: IdentityProvider = Field(default_factory=IdentityProvider)
    identity_provider_type: str = ""
    effective_role: UserRole = Field(default_factory=UserRole)
    effective_assigned_projects: list[ProjectRef] = Field(default_factory=list)


class UserConnection(GraphQLModel):
    nodes: list[User] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)
    total_count: int = 0


class ReadUsers(GraphQLModel):
    """Destination for one page of READ_USERS_QUERY."""

    users: UserConnection = Field(default_factory=UserConnection)


class ReadUser(GraphQLModel):
    """Destination for READ_USER_QUERY."""

    user: User = Field(default_factory=User)


def users_data_source_id(
    first: int,
    max_pages: int,
    search: str | None,
    authentication_source: str,
    roles: list[str] | None,
) -> str:
    """
    Deterministic data source ID derived from the filter arguments.

    The same arguments always produce the same ID, so repeated plans do
    not show a spurious change.

    Returns:
        SHA1 hex digest of the arguments
    """
    identifier = json.dumps(
        {
            "first": first,
            "max_pages": max_pages,
            "search": search or "",
            "authentication_source": authentication_source,
            "roles": sorted(roles or []),
        },
        sort_keys=True,
    )
    return hashlib.sha1(identifier.encode()).hexdigest()


def flatten_users(pages: list[ReadUsers]) -> list[dict[str, object]]:
    """Flatten every user node of every page into attribute maps, in page order."""
    output: list[dict[str, object]] = []
    for page in pages:
        for user in page.users.nodes:
            output.append(
                {
                    "id": user.id,
                    "email": user.email,
                    "name": user.name,
                    "is_suspended": user.is_suspended,
                    "identity_provider_type": user.identity_provider_type,
                    "identity_provider": [{"name": user.identity_provider.name}],
                    "effective_role": [
                        {
                            "id": user.effective_role.id,
                            "name": user.effective_role.name,
                            "scopes": list(user.effective_role.scopes),
                        }
                    ],
                }
            )
    return output


def read_users(
    ctx: RequestContext,
    session: ProviderSession,
    first: int = DEFAULT_PAGE_SIZE,
    max_pages: int = 0,
    search: str | None = None,
    authentication_source: str = "MODERN",
    roles: list[str] | None = None,
) -> tuple[Diagnostics, list[dict[str, object]]]:
    """
    Read the ``wiz_users`` data source.

    Args:
        ctx: Request context
        session: Provider session
        first: Page size (the API allows at most 100)
        max_pages: Page budget, 0 for all pages
        search: Free text search
        authentication_source: LEGACY or MODERN
        roles: Role IDs to filter on

    Returns:
        Tuple of (diagnostics, flattened users). Users are returned only
        when there are no diagnostics.
    """
    if authentication_source not in AUTHENTICATION_SOURCES:
        return [
            Diagnostic(
                severity=Severity.ERROR,
                summary=f"Invalid authentication_source {authentication_source!r}",
                detail=f"Expected one of: {', '.join(AUTHENTICATION_SOURCES)}",
            )
        ], []

    log_with_context(
        logger,
        "info",
        "Reading users",
        first=first,
        max_pages=max_pages,
        authentication_source=authentication_source,
    )

    variables = QueryVariables(
        first=first,
        filter_by=UserFilters(
            search=search or "",
            roles=list(roles or []),
            authentication_source=authentication_source,
        ),
    )

    diags, pages = execute_paged(
        ctx,
        session,
        variables,
        ReadUsers,
        READ_USERS_QUERY,
        "users",
        "read",
        max_pages=max_pages,
    )
    if diags:
        return diags, []

    users = flatten_users(pages)
    log_with_context(logger, "debug", "Read users", pages=len(pages), count=len(users))
    return [], users


def read_user(
    ctx: RequestContext,
    session: ProviderSession,
    user_id: str,
) -> tuple[Diagnostics, dict[str, object] | None]:
    """
    Read a single ``wiz_user``.

    Args:
        ctx: Request context
        session: Provider session
        user_id: Wiz user ID

    Returns:
        Tuple of (diagnostics, attributes). Attributes are None when the
        user no longer exists; diagnostics are then empty so the resource
        is recreated instead of failing the plan.
    """
    if not user_id:
        return [], None

    data = ReadUser()
    diags = execute(
        ctx,
        session,
        QueryVariables(id=user_id),
        data,
        READ_USER_QUERY,
        "user",
        "read",
    )

    if not data.user.id and only_graphql_errors(diags):
        log_with_context(
            logger,
            "info",
            "Resource not found, assuming it was deleted outside terraform",
            user_id=user_id,
            diagnostics=len(diags),
        )
        return [], None

    if has_errors(diags):
        return diags, None

    # Warnings are passed back alongside the attributes
    return diags, {
        "id": data.user.id,
        "name": data.user.name,
        "email": data.user.email,
        "role": data.user.effective_role.id,
        "assigned_project_ids": [p.id for p in data.user.effective_assigned_projects],
    }
