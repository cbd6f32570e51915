"""Client side of diffgate: HTTP client, patch parsing and the reconciling poller."""

from .http import DiffGateClient, DiffGateClientError
from .patches import FileEntry, parse_patch_files
from .poller import ReconcilingPoller
from .reconciler import PendingIntent, ReconciledView, insert_by_path, reconcile

__all__ = [
    "DiffGateClient",
    "DiffGateClientError",
    "FileEntry",
    "parse_patch_files",
    "ReconcilingPoller",
    "PendingIntent",
    "ReconciledView",
    "insert_by_path",
    "reconcile",
]
