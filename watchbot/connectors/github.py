"""GitHub pull request connector for the code-review watcher."""

import re
from typing import List, Optional, Pattern, Union

import requests

from watchbot.connectors.base import SourceConnector
from watchbot.connectors.github_app import GitHubAppAuth, TokenAuth
from watchbot.connectors.http import DEFAULT_TIMEOUT, request_json
from watchbot.core.errors import MalformedResponseError
from watchbot.core.models import Entity, RawFeedback

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TICKET_PATTERN = r"\[([A-Z][A-Z0-9]+-\d+)\]"
PER_PAGE = 100
MAX_PAGES = 50


class GitHubPRConnector(SourceConnector):
    """Reads open pull requests and their reviews and comments."""
    
    def __init__(
        self,
        owner: str,
        repo: str,
        auth: Union[TokenAuth, GitHubAppAuth],
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        ticket_pattern: Union[str, Pattern] = DEFAULT_TICKET_PATTERN,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHub connector.
        
        Args:
            owner: Repository owner
            repo: Repository name
            auth: Object providing get_auth_headers()
            api_url: GitHub API base URL (Enterprise: https://host/api/v3)
            timeout: Per-request timeout in seconds
            ticket_pattern: Regex whose first group pulls a ticket id out of a PR title
            session: Optional requests session (created if not provided)
        """
        self.owner = owner
        self.repo = repo
        self.auth = auth
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.ticket_pattern = re.compile(ticket_pattern) if isinstance(ticket_pattern, str) else ticket_pattern
        self.session = session or requests.Session()
    
    def describe(self) -> str:
        return f"GitHub {self.owner}/{self.repo}"
    
    def _build_api_url(self, endpoint: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/{endpoint.lstrip('/')}"
    
    def _get_paginated(self, endpoint: str, what: str, params: Optional[dict] = None) -> List[dict]:
        """
        Fetch every page of a list endpoint.
        
        Args:
            endpoint: Path below /repos/{owner}/{repo}/
            what: Description for error messages
            params: Extra query parameters for the first page
            
        Returns:
            Concatenated records from all pages
        """
        url: Optional[str] = self._build_api_url(endpoint)
        query = {"per_page": PER_PAGE}
        if params:
            query.update(params)
        
        results: List[dict] = []
        pages = 0
        while url and pages < MAX_PAGES:
            data, response = request_json(
                self.session,
                "GET",
                url,
                what,
                timeout=self.timeout,
                headers=self.auth.get_auth_headers(),
                params=query,
            )
            if not isinstance(data, list):
                raise MalformedResponseError(f"Expected a list of {what}, got {type(data).__name__}")
            results.extend(data)
            pages += 1
            
            # The "next" link already carries the query string.
            url = (response.links or {}).get("next", {}).get("url")
            query = None
        
        return results
    
    def list_open_entities(self) -> List[Entity]:
        pulls = self._get_paginated("pulls", "open pull requests", {"state": "open"})
        return [self._pull_to_entity(pr) for pr in pulls]
    
    def _pull_to_entity(self, pr: dict) -> Entity:
        if not isinstance(pr, dict) or pr.get("number") is None:
            raise MalformedResponseError(f"Pull request record without a number: {pr!r}")
        
        number = pr["number"]
        title = pr.get("title") or ""
        head = pr.get("head") or {}
        if not isinstance(head, dict):
            raise MalformedResponseError(f"Pull request #{number} has a malformed head: {head!r}")
        if not isinstance(title, str):
            raise MalformedResponseError(f"Pull request #{number} has a malformed title: {title!r}")
        
        return Entity(
            key=f"pr-{number}",
            title=title,
            external_url=pr.get("html_url") or "",
            branch_ref=head.get("ref"),
            display_id=self.extract_ticket_id(title) or f"PR-{number}",
        )
    
    def extract_ticket_id(self, title: str) -> Optional[str]:
        """
        Pull a ticket id such as KAN-12 out of a PR title.
        
        Args:
            title: Pull request title, e.g. "[KAN-12] Fix login"
            
        Returns:
            Ticket id or None
        """
        match = self.ticket_pattern.search(title or "")
        if not match:
            return None
        return match.group(1) if match.groups() else match.group(0)
    
    def list_feedback(self, entity: Entity) -> RawFeedback:
        pr_number = self._pr_number(entity)
        return RawFeedback(
            reviews=self._get_paginated(f"pulls/{pr_number}/reviews", f"reviews for PR #{pr_number}"),
            comments=self._get_paginated(f"issues/{pr_number}/comments", f"comments for PR #{pr_number}"),
            inline_comments=self._get_paginated(
                f"pulls/{pr_number}/comments", f"review comments for PR #{pr_number}"
            ),
        )
    
    @staticmethod
    def _pr_number(entity: Entity) -> int:
        try:
            return int(entity.key.split("-", 1)[1])
        except (IndexError, ValueError):
            raise ValueError(f"Not a pull request entity key: {entity.key}")
