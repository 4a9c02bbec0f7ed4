"""GitHub authentication: personal token or GitHub App installation token."""

import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import jwt
import requests

from watchbot.core.errors import ConfigError, ConnectorError, MalformedResponseError

GITHUB_ACCEPT = "application/vnd.github.v3+json"


class TokenAuth:
    """Static personal access token."""

    def __init__(self, token: str):
        if not token:
            raise ConfigError("GitHub token is empty")
        self.token = token

    def get_auth_headers(self) -> dict:
        return {
            "Authorization": f"token {self.token}",
            "Accept": GITHUB_ACCEPT,
        }


class GitHubAppAuth:
    """Handle GitHub App authentication using JWT and installation tokens."""
    
    def __init__(
        self,
        app_id: str,
        private_key_path: str,
        installation_id: str,
        api_url: str,
        timeout: float = 10,
    ):
        """
        Initialize GitHub App authentication.
        
        Args:
            app_id: GitHub App ID
            private_key_path: Path to the App's PEM private key
            installation_id: Installation ID for the watched repository
            api_url: GitHub API base URL
            timeout: Timeout for token requests in seconds
        """
        self.app_id = app_id
        self.installation_id = installation_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        
        key_path = Path(private_key_path)
        if not key_path.is_absolute():
            key_path = (Path.cwd() / key_path).resolve()
        
        if not key_path.is_file():
            raise ConfigError(f"GitHub App private key file not found: {key_path}")
        
        try:
            self.private_key = key_path.read_text()
        except OSError as e:
            raise ConfigError(f"Failed to read GitHub App private key file {key_path}: {e}") from e
        
        self._installation_token: Optional[str] = None
        self._token_expires_at: float = 0
    
    def get_installation_token(self) -> str:
        """
        Get installation access token, using cache if still valid.
        
        Returns:
            Installation access token
            
        Raises:
            ConnectorError: If GitHub refuses or cannot be reached
        """
        if self._installation_token and time.time() < (self._token_expires_at - 300):
            return self._installation_token
        
        jwt_token = self._generate_jwt()
        
        url = f"{self.api_url}/app/installations/{self.installation_id}/access_tokens"
        headers = {
            "Authorization": f"Bearer {jwt_token}",
            "Accept": GITHUB_ACCEPT,
        }
        
        try:
            response = requests.post(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ConnectorError(f"Failed to get installation access token: {e}") from e
        
        if response.status_code != 201:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {}
            error_msg = error_data.get("message", "Unknown error")
            raise ConnectorError(
                f"Failed to get installation access token: {error_msg} "
                f"(status code: {response.status_code})"
            )
        
        try:
            token_data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Installation token response is not JSON: {e}") from e
        if not isinstance(token_data, dict) or not token_data.get("token"):
            raise MalformedResponseError("Installation token response has no token")
        self._installation_token = token_data["token"]
        
        expires_at_str = token_data.get("expires_at")
        try:
            expires_at = datetime.fromisoformat(expires_at_str.replace("Z", "+00:00"))
            self._token_expires_at = expires_at.timestamp()
        except (AttributeError, ValueError):
            self._token_expires_at = time.time() + 3600
        
        return self._installation_token
    
    def _generate_jwt(self) -> str:
        now = int(time.time())
        
        payload = {
            "iat": now - 60,  # clock skew
            "exp": now + (10 * 60),
            "iss": self.app_id,
        }
        
        try:
            return jwt.encode(payload, self.private_key, algorithm="RS256")
        except Exception as e:
            raise ConfigError(f"Failed to generate JWT: {e}") from e
    
    def get_auth_headers(self) -> dict:
        token = self.get_installation_token()
        return {
            "Authorization": f"token {token}",
            "Accept": GITHUB_ACCEPT,
        }
