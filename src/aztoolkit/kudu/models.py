"""Data models for Kudu responses.

Kudu answers in JSON with its own field names (``mtime``, ``user_name``,
``Output``, ``canReachPort``); from_dict maps them onto snake_case fields.
"""

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class FileInfo:
    """A file or directory on the app's file system.

    Attributes:
        name: Entry name
        size: Size in bytes (0 for directories)
        mtime: Last modified time, as reported by Kudu
        crtime: Creation time, as reported by Kudu
        mime: MIME type; "inode/directory" for directories
        href: Kudu URL of the entry
        path: Full path on the app (directory joined with name)
        app: Owning web app or slot, None when not annotated
    """

    name: str
    size: int = 0
    mtime: str | None = None
    crtime: str | None = None
    mime: str | None = None
    href: str | None = None
    path: str | None = None
    app: Any = None

    @property
    def is_directory(self) -> bool:
        return self.mime == "inode/directory"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileInfo":
        return cls(
            name=data["name"],
            size=int(data.get("size") or 0),
            mtime=data.get("mtime"),
            crtime=data.get("crtime"),
            mime=data.get("mime"),
            href=data.get("href"),
            path=data.get("path"),
        )

    def with_app(self, app: Any) -> "FileInfo":
        return replace(self, app=app)

    def with_path(self, path: str) -> "FileInfo":
        return replace(self, path=path)


@dataclass(frozen=True)
class ProcessInfo:
    id: int
    name: str
    href: str | None = None
    user_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessInfo":
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            href=data.get("href"),
            user_name=data.get("user_name"),
        )


@dataclass(frozen=True)
class CommandOutput:
    """Result of a command run through api/command."""

    output: str = ""
    error: str = ""
    exit_code: int = 0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommandOutput":
        return cls(
            output=data.get("Output") or "",
            error=data.get("Error") or "",
            exit_code=int(data.get("ExitCode") or 0),
        )


@dataclass(frozen=True)
class TunnelStatus:
    """Status of the App Service remote-debugging tunnel."""

    port: int | None = None
    can_reach_port: bool = False
    state: str | None = None
    msg: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TunnelStatus":
        port = data.get("port")
        return cls(
            port=int(port) if port is not None else None,
            can_reach_port=bool(data.get("canReachPort", False)),
            state=data.get("state"),
            msg=data.get("msg"),
        )


__all__ = ["CommandOutput", "FileInfo", "ProcessInfo", "TunnelStatus"]
