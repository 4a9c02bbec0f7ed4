"""Jira connector for the issue-tracker watcher."""

from typing import List, Optional

import requests

from watchbot.connectors.base import SourceConnector
from watchbot.connectors.http import DEFAULT_TIMEOUT, request_json
from watchbot.core.errors import MalformedResponseError
from watchbot.core.models import Entity, RawFeedback

SEARCH_FIELDS = ["summary", "status", "description", "priority", "reporter", "created"]
COMMENT_PAGE_SIZE = 100


def build_jql(project_key: str, assignee: str = "currentUser()", status: Optional[str] = "To Do") -> str:
    """
    Build the default ticket search.
    
    Args:
        project_key: Jira project key, e.g. KAN
        assignee: Account or JQL function, e.g. bobdev or currentUser()
        status: Workflow status to watch, or None for any status
        
    Returns:
        JQL query string
    """
    clauses = [f"project = {project_key}", f"assignee = {assignee}"]
    if status:
        clauses.append(f'status = "{status}"')
    return " AND ".join(clauses) + " ORDER BY created DESC"


class JiraConnector(SourceConnector):
    """Reads assigned tickets and their comments from Jira Cloud."""
    
    def __init__(
        self,
        host: str,
        email: str,
        api_token: str,
        jql: str,
        max_results: int = 50,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Jira connector.
        
        Args:
            host: Jira site host, e.g. example.atlassian.net
            email: Account email for basic auth
            api_token: Jira API token
            jql: Ticket search query
            max_results: Maximum tickets considered per pass
            timeout: Per-request timeout in seconds
            session: Optional requests session (created if not provided)
        """
        self.host = host.replace("https://", "").replace("http://", "").rstrip("/")
        self.jql = jql
        self.max_results = max_results
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (email, api_token)
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
    
    @property
    def base_url(self) -> str:
        return f"https://{self.host}/rest/api/3"
    
    def describe(self) -> str:
        return f"Jira {self.host} ({self.jql})"
    
    def browse_url(self, key: str) -> str:
        return f"https://{self.host}/browse/{key}"
    
    def list_open_entities(self) -> List[Entity]:
        issues: List[dict] = []
        next_page_token: Optional[str] = None
        
        while len(issues) < self.max_results:
            payload = {
                "jql": self.jql,
                "fields": SEARCH_FIELDS,
                "maxResults": self.max_results - len(issues),
            }
            if next_page_token:
                payload["nextPageToken"] = next_page_token
            
            data, _ = request_json(
                self.session,
                "POST",
                f"{self.base_url}/search/jql",
                "Jira tickets",
                timeout=self.timeout,
                json=payload,
            )
            if not isinstance(data, dict) or not isinstance(data.get("issues"), list):
                raise MalformedResponseError("Jira search response has no issues list")
            
            issues.extend(data["issues"])
            next_page_token = data.get("nextPageToken")
            if not next_page_token or data.get("isLast") or not data["issues"]:
                break
        
        return [self._issue_to_entity(issue) for issue in issues[: self.max_results]]
    
    def _issue_to_entity(self, issue: dict) -> Entity:
        if not isinstance(issue, dict) or not issue.get("key"):
            raise MalformedResponseError(f"Jira issue without a key: {issue!r}")
        
        key = issue["key"]
        fields = _mapping(issue.get("fields"), f"{key} fields")
        status = _mapping(fields.get("status"), f"{key} status")
        priority = _mapping(fields.get("priority"), f"{key} priority")
        
        return Entity(
            key=key,
            title=fields.get("summary") or "",
            external_url=self.browse_url(key),
            display_id=key,
            details={
                "status": status.get("name"),
                "priority": priority.get("name") or "None",
                # Carried through to list_feedback; not rendered.
                "_description": fields.get("description"),
                "_reporter": fields.get("reporter"),
                "_created": fields.get("created"),
            },
        )
    
    def list_feedback(self, entity: Entity) -> RawFeedback:
        description = {
            "id": f"{entity.key}:description",
            "author": entity.details.get("_reporter") or "reporter",
            "body": entity.details.get("_description") or "No description provided",
            "created": entity.details.get("_created"),
        }
        return RawFeedback(comments=[description] + self._get_comments(entity.key))
    
    def _get_comments(self, key: str) -> List[dict]:
        comments: List[dict] = []
        start_at = 0
        
        while True:
            data, _ = request_json(
                self.session,
                "GET",
                f"{self.base_url}/issue/{key}/comment",
                f"comments for {key}",
                timeout=self.timeout,
                params={"startAt": start_at, "maxResults": COMMENT_PAGE_SIZE, "orderBy": "created"},
            )
            if not isinstance(data, dict) or not isinstance(data.get("comments"), list):
                raise MalformedResponseError(f"Jira comment response for {key} has no comments list")
            
            page = data["comments"]
            comments.extend(page)
            start_at += len(page)
            
            total = data.get("total")
            if not page or not isinstance(total, int) or start_at >= total:
                break
        
        return comments


def _mapping(value, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedResponseError(f"Malformed {what}: {value!r}")
    return value
