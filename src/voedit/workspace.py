from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from voedit.patch import BufferedDocumentOps, DocumentOps, FileSystemDocumentOps
from voedit.settings import EngineSettings


class Workspace:
    """
    Project root plus any open, unsaved editor buffers.

    Buffers are keyed by path relative to base_path and take precedence over
    the on-disk copy.
    """

    def __init__(
        self,
        base_path: Path,
        settings: Optional[EngineSettings] = None,
        buffers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.base_path = Path(base_path)
        self.settings = settings or EngineSettings()
        self.buffers: Dict[str, str] = buffers if buffers is not None else {}

    def document_ops(self) -> DocumentOps:
        disk = FileSystemDocumentOps(self.base_path)
        if not self.buffers:
            return disk
        return BufferedDocumentOps(disk, self.buffers)
