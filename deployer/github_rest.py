import base64
import logging
from typing import Dict, List, Optional, Union
import requests
from .errors import PublishError

logger = logging.getLogger(__name__)

def repo_html_url(owner: str, repo: str) -> str:
    return f"https://github.com/{owner}/{repo}"

def pages_url(owner: str, repo: str) -> str:
    # Pages URL by convention; returned even when activation could not be confirmed
    return f"https://{owner}.github.io/{repo}/"

class GitHubClient:
    """Minimal GitHub REST client covering repo creation, the git data API and Pages.

    Every failure surfaces as ``PublishError``; ``status`` is the HTTP status
    when the server answered, ``None`` for transport errors.
    """

    def __init__(self, token: str, api_url: str = "https://api.github.com",
                 session: Optional[requests.Session] = None, timeout: float = 30):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._login: Optional[str] = None
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.api_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise PublishError(f"{method} {path} failed: {e}", strategy="api") from e
        if r.status_code >= 400:
            try:
                message = r.json().get("message", r.text)
            except ValueError:
                message = r.text
            raise PublishError(f"{method} {path} -> {r.status_code}: {message}",
                               status=r.status_code, strategy="api")
        if r.status_code == 204 or not r.content:
            return {}
        return r.json()

    def login(self) -> str:
        """Login of the token's user, fetched once."""
        if self._login is None:
            self._login = self._request("GET", "/user")["login"]
        return self._login

    def create_repo(self, name: str, description: str = "", auto_init: bool = True,
                    owner: Optional[str] = None) -> dict:
        # an owner other than the token's user is an organization
        path = "/user/repos"
        if owner and owner.lower() != self.login().lower():
            path = f"/orgs/{owner}/repos"
        return self._request("POST", path, json={
            "name": name,
            "description": description,
            "private": False,
            "auto_init": auto_init,
        })

    def get_ref_sha(self, owner: str, repo: str, branch: str) -> str:
        data = self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}")
        return data["object"]["sha"]

    def create_blob(self, owner: str, repo: str, content: Union[str, bytes]) -> str:
        if isinstance(content, bytes):
            body = {"content": base64.b64encode(content).decode("ascii"), "encoding": "base64"}
        else:
            body = {"content": content, "encoding": "utf-8"}
        return self._request("POST", f"/repos/{owner}/{repo}/git/blobs", json=body)["sha"]

    def create_tree(self, owner: str, repo: str, entries: List[Dict[str, str]]) -> str:
        return self._request("POST", f"/repos/{owner}/{repo}/git/trees", json={"tree": entries})["sha"]

    def create_commit(self, owner: str, repo: str, message: str, tree: str, parents: List[str]) -> str:
        return self._request("POST", f"/repos/{owner}/{repo}/git/commits", json={
            "message": message,
            "tree": tree,
            "parents": parents,
        })["sha"]

    def update_ref(self, owner: str, repo: str, branch: str, sha: str, force: bool = True) -> dict:
        return self._request("PATCH", f"/repos/{owner}/{repo}/git/refs/heads/{branch}",
                             json={"sha": sha, "force": force})

    def get_branch(self, owner: str, repo: str, branch: str) -> dict:
        return self._request("GET", f"/repos/{owner}/{repo}/branches/{branch}")

    def enable_pages(self, owner: str, repo: str, branch: str, path: str = "/") -> dict:
        return self._request("POST", f"/repos/{owner}/{repo}/pages",
                             json={"source": {"branch": branch, "path": path}})
