"""
Local persistence for Canvas Refine.

Components:
- Workspace: Work folder with the exported input and the generated output
- CredentialStore: File-backed API key storage
"""

from canvas_refine.persistence.credential_store import CredentialStore
from canvas_refine.persistence.workspace import Workspace

__all__ = [
    "Workspace",
    "CredentialStore",
]
