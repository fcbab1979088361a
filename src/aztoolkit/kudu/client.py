"""Kudu client - file and process operations on a web app's SCM site.

Kudu is the management sidecar of every App Service app, reachable at
https://<app>.scm.<domain>. The client is a thin blocking facade over
requests: every call raises on the first failure, nothing is retried.

Security:
- Bearer tokens for the management scope are attached per request by
  KuduAuth and never logged
- Paths are URL-quoted before being put into the request line

Example:
    >>> client = KuduClient.for_web_app(app, credential)
    >>> [f.name for f in client.list_files_in_directory("site/wwwroot")]
    ['hostingstart.html']
    >>> client.execute_command("echo hi", "site").output
    'hi\\n'
"""

import logging
import posixpath
import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar
from urllib.parse import quote

import requests
from requests.auth import AuthBase

from aztoolkit.exceptions import ConfigurationError, RemoteOperationError
from aztoolkit.kudu.models import CommandOutput, FileInfo, ProcessInfo, TunnelStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

MANAGEMENT_SCOPE = "https://management.azure.com/.default"
DEFAULT_TIMEOUT = 60  # seconds
LOGGING_CONTEXT = "aztoolkit.kudu"

# Written by Kudu itself while tracing; not a user file.
TRACE_PENDING_FILE = "LogFiles-kudu-trace_pending.xml"
TRACE_PENDING_MIME = "text/xml"


def kudu_host(default_hostname: str | None) -> str:
    """Derive the SCM site URL from an app's default hostname.

    Example:
        >>> kudu_host("myapp.azurewebsites.net")
        'https://myapp.scm.azurewebsites.net'

    Raises:
        ConfigurationError: If the app has no (valid) hostname yet
    """
    if not default_hostname:
        raise ConfigurationError("Cannot build a Kudu client before the web app is created")
    host = default_hostname.lower().replace("http://", "").replace("https://", "").strip("/")
    if "." not in host:
        raise ConfigurationError(f"Invalid web app hostname: '{default_hostname}'")
    name, domain = host.split(".", 1)
    return f"https://{name}.scm.{domain}"


class KuduAuth(AuthBase):
    """requests auth attaching an Azure AD bearer token for the management scope.

    Tokens are reused until shortly before they expire.
    """

    REFRESH_MARGIN = 300  # seconds

    def __init__(self, credential: Any, scope: str = MANAGEMENT_SCOPE):
        self.credential = credential
        self.scope = scope
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_on = 0.0

    def token(self) -> str:
        with self._lock:
            if self._token is None or time.time() >= self._expires_on - self.REFRESH_MARGIN:
                access_token = self.credential.get_token(self.scope)
                self._token = access_token.token
                self._expires_on = float(access_token.expires_on)
            return self._token

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = f"Bearer {self.token()}"
        return request


def build_kudu_session(credential: Any, base_session: requests.Session | None = None) -> requests.Session:
    """Create a session for Kudu, reusing transport settings of an existing one.

    Headers, mounted adapters, proxies and TLS verification carry over from
    `base_session`; its authentication does not, Kudu gets its own.
    """
    session = requests.Session()
    if base_session is not None:
        session.headers.update(
            {k: v for k, v in base_session.headers.items() if k.lower() != "authorization"}
        )
        for prefix, adapter in base_session.adapters.items():
            session.mount(prefix, adapter)
        session.proxies.update(base_session.proxies)
        session.verify = base_session.verify
    session.auth = KuduAuth(credential)
    return session


def _vfs(path: str, directory: bool = False) -> str:
    route = "api/vfs/" + quote(path.strip("/"), safe="/")
    if directory and not route.endswith("/"):
        route += "/"
    return route


class KuduClient:
    """Blocking client for one app's SCM site.

    Attributes:
        host: SCM site base URL, e.g. https://myapp.scm.azurewebsites.net
        app: Owning web app or slot (set on returned FileInfo objects)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        host: str,
        session: requests.Session,
        app: Any = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.host = host.rstrip("/")
        self.session = session
        self.app = app
        self.timeout = timeout

    @classmethod
    def for_web_app(
        cls,
        app: Any,
        credential: Any,
        timeout: int = DEFAULT_TIMEOUT,
        base_session: requests.Session | None = None,
    ) -> "KuduClient":
        """Build a client for a loaded web app or slot resource.

        Raises:
            ConfigurationError: If the app is not loaded or has no hostname
        """
        site = app.remote
        if site is None:
            raise ConfigurationError(f"Cannot build a Kudu client for '{app.name}' before it is loaded")
        host = kudu_host(getattr(site, "default_host_name", None))
        return cls(host, build_kudu_session(credential, base_session), app=app, timeout=timeout)

    def get_file_content(self, path: str) -> bytes:
        """Download a file fully into memory."""
        response = self._request("GET", _vfs(path), "getFile", stream=True)
        with response:
            return b"".join(response.iter_content(chunk_size=64 * 1024))

    def list_files_in_directory(self, directory: str) -> list[FileInfo]:
        """List a directory, each entry annotated with its full path and owning app."""
        response = self._request("GET", _vfs(directory, directory=True), "getFilesInDirectory")
        entries = self._decode(
            response, "getFilesInDirectory", lambda data: [FileInfo.from_dict(e) for e in data or []]
        )
        files = []
        for info in entries:
            if info.mime == TRACE_PENDING_MIME and TRACE_PENDING_FILE in info.name:
                continue
            files.append(info.with_app(self.app).with_path(posixpath.join(directory, info.name)))
        return files

    def get_file_by_path(self, path: str) -> FileInfo | None:
        """Find one file by listing its parent directory; None when absent."""
        directory, name = posixpath.split(path.rstrip("/"))
        return next((f for f in self.list_files_in_directory(directory) if f.name == name), None)

    def upload_file(self, content: bytes | str, path: str) -> None:
        """Write a file, overwriting whatever is there."""
        data = content.encode("utf-8") if isinstance(content, str) else content
        logger.info(f"Uploading {len(data)} bytes to {path} on {self.host}")
        self._request(
            "PUT",
            _vfs(path),
            "saveFile",
            headers={"Content-Type": "application/octet-stream", "If-Match": "*"},
            data=data,
        )

    def create_directory(self, path: str) -> None:
        logger.info(f"Creating directory {path} on {self.host}")
        self._request("PUT", _vfs(path, directory=True), "createDirectory")

    def delete_file(self, path: str) -> None:
        logger.info(f"Deleting {path} on {self.host}")
        self._request("DELETE", _vfs(path), "deleteFile", headers={"If-Match": "*"})

    def list_processes(self) -> list[ProcessInfo]:
        response = self._request("GET", "api/processes", "listProcesses")
        return self._decode(
            response, "listProcesses", lambda data: [ProcessInfo.from_dict(e) for e in data or []]
        )

    def execute_command(self, command: str, directory: str) -> CommandOutput:
        """Run a command on the app's host and wait for its output."""
        logger.info(f"Executing command in {directory} on {self.host}")
        response = self._request(
            "POST",
            "api/command",
            "executeCommand",
            json={"command": command, "dir": directory},
        )
        return self._decode(response, "executeCommand", lambda data: CommandOutput.from_dict(data or {}))

    def get_tunnel_status(self) -> TunnelStatus:
        response = self._request(
            "GET",
            "AppServiceTunnel/Tunnel.ashx?GetStatus&GetStatusAPIVer=2",
            "getAppServiceTunnelStatus",
        )
        return self._decode(
            response, "getAppServiceTunnelStatus", lambda data: TunnelStatus.from_dict(data or {})
        )

    def _request(
        self,
        method: str,
        route: str,
        operation: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        url = f"{self.host}/{route}"
        request_headers = {"x-ms-logging-context": f"{LOGGING_CONTEXT} {operation}"}
        request_headers.update(headers or {})
        logger.debug(f"Kudu {method} {url}")
        try:
            response = self.session.request(
                method, url, headers=request_headers, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            raise RemoteOperationError(f"Kudu {operation} failed for {url}: {e}", cause=e) from e

    def _decode(self, response: requests.Response, operation: str, parse: Callable[[Any], T]) -> T:
        """Parse a JSON body; a body Kudu should not have sent is a failed operation."""
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise RemoteOperationError(
                f"Kudu {operation} returned an unexpected body from {self.host}: {e}", cause=e
            ) from e

    def __repr__(self) -> str:
        return f"KuduClient({self.host})"


__all__ = ["KuduAuth", "KuduClient", "build_kudu_session", "kudu_host"]
