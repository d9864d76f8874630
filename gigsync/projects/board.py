"""Mirror job records onto a GitHub Projects (v2) board.

The board's node id and field schema are resolved once per client. Jobs
over ``HIGH_VALUE_THRESHOLD`` become real issues in the companion repo and
are attached to the board; everything else becomes a draft item. The client
does no cross-run de-duplication: callers check the store's sync flag first.
"""
from __future__ import annotations

import re
from typing import Iterator

from gigsync.classifier import derive_tags, is_high_value, size_bucket
from gigsync.errors import ProjectInitError, ProjectSyncError
from gigsync.log import get_logger
from gigsync.models import CreateResult, JobRecord
from gigsync.projects.fields import FieldValue, ProjectField, resolve_fields
from gigsync.projects.formatting import end_date, format_body, format_budget, format_title, start_date
from gigsync.projects.graphql import GraphQLClient
from gigsync.projects.issues import IssueTrackerClient

log = get_logger(__name__)

PAGE_SIZE = 100

_PROJECT_URL_RE = re.compile(r"github\.com/(users|orgs)/([^/]+)/projects/(\d+)")

PROJECT_QUERY = """
query($owner: String!, $number: Int!) {
  %(owner_field)s(login: $owner) {
    projectV2(number: $number) {
      id
      title
      fields(first: 50) {
        nodes {
          ... on ProjectV2Field { id name dataType }
          ... on ProjectV2SingleSelectField { id name dataType options { id name } }
          ... on ProjectV2IterationField { id name dataType }
        }
      }
    }
  }
}
"""

ADD_DRAFT = """
mutation($projectId: ID!, $title: String!, $body: String!) {
  addProjectV2DraftIssue(input: {projectId: $projectId, title: $title, body: $body}) {
    projectItem { id }
  }
}
"""

ADD_BY_CONTENT = """
mutation($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: {projectId: $projectId, contentId: $contentId}) {
    item { id }
  }
}
"""

UPDATE_FIELD = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $value: ProjectV2FieldValue!) {
  updateProjectV2ItemFieldValue(
    input: {projectId: $projectId, itemId: $itemId, fieldId: $fieldId, value: $value}
  ) {
    projectV2Item { id }
  }
}
"""

LIST_ITEMS = """
query($projectId: ID!, $first: Int!, $after: String) {
  node(id: $projectId) {
    ... on ProjectV2 {
      items(first: $first, after: $after) {
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          type
          content {
            ... on Issue { id title number }
            ... on DraftIssue { id title }
            ... on PullRequest { id title number }
          }
        }
      }
    }
  }
}
"""

DELETE_ITEM = """
mutation($projectId: ID!, $itemId: ID!) {
  deleteProjectV2Item(input: {projectId: $projectId, itemId: $itemId}) {
    deletedItemId
  }
}
"""

VIEWER = "query { viewer { login } }"


def parse_project_url(url: str) -> tuple[str, str, int]:
    """Return (owner_field, owner, number) for a users/ or orgs/ project URL."""
    m = _PROJECT_URL_RE.search(url or "")
    if not m:
        raise ProjectInitError(f"Invalid GitHub project URL: {url!r}")
    kind, owner, number = m.groups()
    return ("user" if kind == "users" else "organization"), owner, int(number)


class ProjectBoardClient:
    def __init__(
        self,
        token: str,
        project_url: str,
        issues_repo: str = "",
        timeout: float = 15.0,
        graphql: GraphQLClient | None = None,
        issues: IssueTrackerClient | None = None,
    ) -> None:
        if not token:
            raise ProjectInitError("GITHUB_TOKEN is not set")
        self.project_url = project_url
        self.owner_field, self.owner, self.number = parse_project_url(project_url)
        self.graphql = graphql or GraphQLClient(token, timeout=timeout)
        if issues is None and issues_repo:
            issues = IssueTrackerClient(token, issues_repo, timeout=timeout)
        self.issues = issues
        self.project_id: str | None = None
        self.project_title: str = ""
        self.fields: dict[str, ProjectField] = {}

    @property
    def initialized(self) -> bool:
        return self.project_id is not None

    def initialize(self) -> None:
        """Resolve the board id and field schema. Raises ProjectInitError."""
        if self.initialized:
            return
        query = PROJECT_QUERY % {"owner_field": self.owner_field}
        try:
            data = self.graphql.execute(query, {"owner": self.owner, "number": self.number})
        except ProjectSyncError as exc:
            raise ProjectInitError(f"Could not load project {self.project_url}: {exc}",
                                   status=exc.status, errors=exc.errors) from exc

        project = (data.get(self.owner_field) or {}).get("projectV2")
        if not project or not project.get("id"):
            raise ProjectInitError(f"Project not found: {self.project_url}")

        self.fields = resolve_fields((project.get("fields") or {}).get("nodes") or [])
        self.project_id = project["id"]
        self.project_title = project.get("title", "")
        log.info(
            "Project '%s' ready (%s), %d mapped fields: %s",
            self.project_title, self.project_id, len(self.fields), ", ".join(sorted(self.fields)),
        )

    def test_connection(self) -> tuple[bool, str]:
        try:
            data = self.graphql.execute(VIEWER)
        except ProjectSyncError as exc:
            return False, str(exc)
        login = (data.get("viewer") or {}).get("login", "")
        return bool(login), login or "no viewer in response"

    # --- creation -----------------------------------------------------------

    def create_item(self, job: JobRecord) -> CreateResult:
        """Create one board item for ``job`` and fill its fields.

        Raises ProjectInitError if the board cannot be resolved; any other
        failure comes back as ``CreateResult(success=False)``.
        """
        self.initialize()
        try:
            if is_high_value(job.budget):
                result = self._create_issue_item(job)
            else:
                result = self._create_draft_item(job)
        except ProjectSyncError as exc:
            log.error("Project item for job %s failed: %s", job.id, exc)
            return CreateResult(success=False, error=str(exc))

        if result.success:
            self.update_item_fields(result.item_id, job)
        return result

    def _create_draft_item(self, job: JobRecord) -> CreateResult:
        data = self.graphql.execute(
            ADD_DRAFT,
            {"projectId": self.project_id, "title": format_title(job), "body": format_body(job)},
        )
        item_id = ((data.get("addProjectV2DraftIssue") or {}).get("projectItem") or {}).get("id")
        if not item_id:
            raise ProjectSyncError("Draft issue response missing item id")
        log.info("Draft item %s for job %s (%s)", item_id, job.id, format_budget(job.budget, job.currency))
        return CreateResult(success=True, item_id=item_id, kind="draft")

    def _create_issue_item(self, job: JobRecord) -> CreateResult:
        if job.github_issue_node_id:
            node_id, number, url = job.github_issue_node_id, job.github_issue_number, None
            log.info("Reusing issue #%s for job %s", number, job.id)
        else:
            if self.issues is None:
                raise ProjectSyncError("No issues repository configured for high-value jobs")
            labels = [job.category, *derive_tags(job)]
            issue = self.issues.create_issue(format_title(job), format_body(job), labels)
            node_id, number, url = issue["node_id"], issue.get("number"), issue.get("html_url")

        try:
            data = self.graphql.execute(ADD_BY_CONTENT, {"projectId": self.project_id, "contentId": node_id})
            item_id = ((data.get("addProjectV2ItemById") or {}).get("item") or {}).get("id")
            if not item_id:
                raise ProjectSyncError("Attach response missing item id")
        except ProjectSyncError as exc:
            # The issue exists now; hand its id back so the caller can keep it.
            log.error("Issue #%s for job %s not attached to board: %s", number, job.id, exc)
            return CreateResult(
                success=False, kind="issue", issue_node_id=node_id,
                issue_number=number, issue_url=url, error=str(exc),
            )
        log.info("Issue #%s attached as %s for job %s", number, item_id, job.id)
        return CreateResult(
            success=True,
            item_id=item_id,
            kind="issue",
            issue_node_id=node_id,
            issue_number=number,
            issue_url=url,
        )

    # --- fields -------------------------------------------------------------

    def field_values(self, job: JobRecord) -> dict[str, FieldValue]:
        """Encoded values for every mapped role that has data for this job."""
        raw = {
            "budget": format_budget(job.budget, job.currency) if job.budget else None,
            "category": job.category,
            "size": size_bucket(job.budget).value,
            "start_date": start_date(job),
            "end_date": end_date(job),
            "tags": ", ".join(derive_tags(job)),
        }
        values: dict[str, FieldValue] = {}
        for role, value in raw.items():
            f = self.fields.get(role)
            if f is None:
                continue
            if role == "budget" and f.data_type == "NUMBER":
                value = job.budget or None
            encoded = f.value_for(value)
            if encoded is None:
                log.debug("No %s value for field '%s' on job %s", role, f.name, job.id)
                continue
            values[role] = encoded
        return values

    def update_item_fields(self, item_id: str, job: JobRecord) -> dict[str, bool]:
        """Best-effort: each field is written independently, failures are logged."""
        outcome: dict[str, bool] = {}
        for role, value in self.field_values(job).items():
            try:
                self.set_field(item_id, self.fields[role].id, value)
                outcome[role] = True
            except ProjectSyncError as exc:
                log.warning("Field %s on item %s failed: %s", role, item_id, exc)
                outcome[role] = False
        return outcome

    def set_field(self, item_id: str, field_id: str, value: FieldValue) -> None:
        self.graphql.execute(
            UPDATE_FIELD,
            {
                "projectId": self.project_id,
                "itemId": item_id,
                "fieldId": field_id,
                "value": value.encode(),
            },
        )

    # --- administration -----------------------------------------------------

    def list_items(self) -> Iterator[dict]:
        self.initialize()
        cursor: str | None = None
        while True:
            data = self.graphql.execute(
                LIST_ITEMS, {"projectId": self.project_id, "first": PAGE_SIZE, "after": cursor}
            )
            items = (data.get("node") or {}).get("items") or {}
            yield from items.get("nodes") or []
            page = items.get("pageInfo") or {}
            if not page.get("hasNextPage"):
                return
            cursor = page.get("endCursor")
            if not cursor:
                log.warning("Item listing says more pages follow but gave no cursor; stopping")
                return

    def delete_item(self, item_id: str) -> bool:
        data = self.graphql.execute(DELETE_ITEM, {"projectId": self.project_id, "itemId": item_id})
        return (data.get("deleteProjectV2Item") or {}).get("deletedItemId") == item_id

    def clear_board(self) -> tuple[int, int]:
        """Delete every item on the board. Returns (deleted, total)."""
        items = list(self.list_items())
        log.info("Clearing %d items from project '%s'", len(items), self.project_title)
        deleted = 0
        for item in items:
            title = (item.get("content") or {}).get("title") or item["id"]
            try:
                if self.delete_item(item["id"]):
                    deleted += 1
                    log.info("Deleted item: %s", title)
                else:
                    log.warning("Delete of %s returned no confirmation", title)
            except ProjectSyncError as exc:
                log.error("Failed to delete item %s: %s", item["id"], exc)
        log.info("Cleared %d/%d items", deleted, len(items))
        return deleted, len(items)
