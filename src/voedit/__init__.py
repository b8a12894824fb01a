from voedit.patch import (  # noqa: F401
    BatchResult,
    EditRequest,
    EditStatus,
    apply_batch,
    apply_edit,
    edit_document,
)
from voedit.settings import EngineSettings, load_settings  # noqa: F401

__version__ = "0.1.0"
