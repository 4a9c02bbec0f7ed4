"""Watcher configuration management."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from watchbot.connectors.base import SourceConnector
from watchbot.connectors.github import DEFAULT_API_URL, DEFAULT_TICKET_PATTERN, GitHubPRConnector
from watchbot.connectors.github_app import GitHubAppAuth, TokenAuth
from watchbot.connectors.jira import JiraConnector, build_jql
from watchbot.core.errors import ConfigError
from watchbot.core.filters import DEFAULT_APPROVED_STATES, DEFAULT_BOT_LOGINS
from watchbot.core.fingerprint_store import BACKENDS
from watchbot.core.render import REVIEW_TEMPLATE, TICKET_TEMPLATE, TaskTemplate

logger = logging.getLogger(__name__)

SOURCES = ("github", "jira")

DEFAULT_POLL_INTERVALS = {"github": 15, "jira": 10}


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load option overrides from a YAML (or JSON) file.
    
    Keys are the environment variable names, case-insensitive, e.g.
    ``watchbot_poll_interval: 30`` or ``GITHUB_REPO: my-repo``.
    
    Args:
        path: Path to the config file
        
    Returns:
        Mapping of upper-cased option name to value
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")
    
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Unable to parse config file {path}: {e}") from e
    
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping of options")
    
    return {str(k).upper(): v for k, v in data.items()}


class WatcherConfig:
    """Watcher configuration loaded from overrides and environment variables."""
    
    def __init__(self, source: str, overrides: Optional[Mapping[str, Any]] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Load configuration.
        
        Args:
            source: "github" (review watcher) or "jira" (ticket watcher)
            overrides: Values taking precedence over the environment
            environ: Environment to read (defaults to os.environ)
        """
        if source not in SOURCES:
            raise ConfigError(f"Unknown source {source!r}; expected one of {', '.join(SOURCES)}")
        
        self.source = source
        self._overrides = {str(k).upper(): v for k, v in (overrides or {}).items() if v is not None}
        self._environ = os.environ if environ is None else environ
        
        self.poll_interval = self._load_int("WATCHBOT_POLL_INTERVAL", DEFAULT_POLL_INTERVALS[source], minimum=1)
        self.request_timeout = self._load_int("WATCHBOT_REQUEST_TIMEOUT", 10, minimum=1)
        self.bot_logins = self._load_list("WATCHBOT_BOT_LOGINS", list(DEFAULT_BOT_LOGINS))
        self.approved_states = self._load_list("WATCHBOT_APPROVED_STATES", list(DEFAULT_APPROVED_STATES))
        self.tasks_dir = Path(self._get("WATCHBOT_TASKS_DIR") or Path.cwd() / "watchbot_tasks")
        self.store_backend = self._load_store_backend()
        self.store_path = self._load_store_path()
    
    def _get(self, name: str) -> Optional[str]:
        if name in self._overrides:
            value = self._overrides[name]
            return value if isinstance(value, str) else str(value)
        value = self._environ.get(name)
        return value if value else None
    
    def _get_list_value(self, name: str) -> Optional[Union[str, List[str]]]:
        value = self._overrides.get(name)
        if isinstance(value, list):
            return [str(v) for v in value]
        return self._get(name)
    
    def _load_int(self, name: str, default: int, minimum: int = 0) -> int:
        raw = self._get(name)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Invalid %s=%r, using default %d", name, raw, default)
            return default
        if value < minimum:
            logger.warning("%s must be at least %d, using default %d", name, minimum, default)
            return default
        return value
    
    def _load_list(self, name: str, default: List[str]) -> List[str]:
        raw = self._get_list_value(name)
        if raw is None:
            return default
        if isinstance(raw, list):
            return [v.strip() for v in raw if v.strip()]
        return [v.strip() for v in raw.split(",") if v.strip()]
    
    def _load_store_backend(self) -> str:
        backend = (self._get("WATCHBOT_STORE_BACKEND") or "json").lower()
        if backend not in BACKENDS:
            raise ConfigError(
                f"Invalid WATCHBOT_STORE_BACKEND={backend!r}; expected one of {', '.join(BACKENDS)}"
            )
        return backend
    
    def _load_store_path(self) -> Path:
        explicit = self._get("WATCHBOT_STORE_PATH")
        if explicit:
            return Path(explicit)
        suffix = "db" if self.store_backend == "sqlite" else "json"
        return self.tasks_dir / f"{self.source}-fingerprints.{suffix}"
    
    @property
    def template(self) -> TaskTemplate:
        return REVIEW_TEMPLATE if self.source == "github" else TICKET_TEMPLATE
    
    def _require(self, *names: str) -> Dict[str, str]:
        values = {name: self._get(name) for name in names}
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigError(
                "Missing required configuration: " + ", ".join(missing)
                + ". Set the environment variable(s) or add them to a .env file."
            )
        return values
    
    def create_connector(self) -> SourceConnector:
        """
        Build the source connector for this watcher.
        
        Returns:
            Configured connector
            
        Raises:
            ConfigError: If required identifiers or credentials are missing
        """
        if self.source == "github":
            return self._create_github_connector()
        return self._create_jira_connector()
    
    def _create_github_connector(self) -> GitHubPRConnector:
        values = self._require("GITHUB_OWNER", "GITHUB_REPO")
        api_url = (self._get("GITHUB_API_URL") or self._get("GITHUB_BASE_URL") or DEFAULT_API_URL).rstrip("/")
        
        token = self._get("GITHUB_TOKEN")
        if token:
            auth = TokenAuth(token)
        elif self._get("GITHUB_APP_ID"):
            app = self._require("GITHUB_APP_ID", "GITHUB_APP_PRIVATE_KEY_PATH", "GITHUB_APP_INSTALLATION_ID")
            auth = GitHubAppAuth(
                app_id=app["GITHUB_APP_ID"],
                private_key_path=app["GITHUB_APP_PRIVATE_KEY_PATH"],
                installation_id=app["GITHUB_APP_INSTALLATION_ID"],
                api_url=api_url,
                timeout=self.request_timeout,
            )
        else:
            raise ConfigError(
                "GitHub credentials not found. Set GITHUB_TOKEN, or GITHUB_APP_ID, "
                "GITHUB_APP_PRIVATE_KEY_PATH and GITHUB_APP_INSTALLATION_ID."
            )
        
        return GitHubPRConnector(
            owner=values["GITHUB_OWNER"],
            repo=values["GITHUB_REPO"],
            auth=auth,
            api_url=api_url,
            timeout=self.request_timeout,
            ticket_pattern=self._get("WATCHBOT_TICKET_PATTERN") or DEFAULT_TICKET_PATTERN,
        )
    
    def _create_jira_connector(self) -> JiraConnector:
        values = self._require("JIRA_HOST", "JIRA_EMAIL", "JIRA_API_TOKEN", "JIRA_PROJECT_KEY")
        jql = self._get("JIRA_JQL") or build_jql(
            values["JIRA_PROJECT_KEY"],
            assignee=self._get("JIRA_ASSIGNEE") or "currentUser()",
            status=self._get("JIRA_STATUS") or "To Do",
        )
        return JiraConnector(
            host=values["JIRA_HOST"],
            email=values["JIRA_EMAIL"],
            api_token=values["JIRA_API_TOKEN"],
            jql=jql,
            max_results=self._load_int("JIRA_MAX_RESULTS", 50, minimum=1),
            timeout=self.request_timeout,
        )
