"""Kudu (SCM site) remote file and process client for web apps."""

from aztoolkit.kudu.client import KuduAuth, KuduClient, build_kudu_session, kudu_host
from aztoolkit.kudu.models import CommandOutput, FileInfo, ProcessInfo, TunnelStatus

__all__ = [
    "CommandOutput",
    "FileInfo",
    "KuduAuth",
    "KuduClient",
    "ProcessInfo",
    "TunnelStatus",
    "build_kudu_session",
    "kudu_host",
]
