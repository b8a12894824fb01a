from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from voedit.logger import logger
from voedit.patch import EditError, EditRequest, edit_document
from voedit.settings import EngineSettings, ToolSpec
from voedit.tools import base as tools_base

ARGS_PREVIEW_MAX_CHARS = 4000

_ALLOWED_TOP_KEYS = {"file_path", "edits"}
_ALLOWED_EDIT_KEYS = {"old_string", "new_string", "original", "replacement"}


def _unrecognised_keys(data: Dict[str, Any], allowed: set) -> List[str]:
    return sorted(str(k) for k in data.keys() if str(k) not in allowed)


def _validate_edit(edit: Any, index: int) -> Optional[str]:
    if not isinstance(edit, dict):
        return f"Edit {index}: must be an object with 'old_string' and 'new_string'"
    old = edit.get("old_string", edit.get("original"))
    new = edit.get("new_string", edit.get("replacement"))
    if not isinstance(old, str):
        return f"Edit {index}: 'old_string' must be a string"
    if not isinstance(new, str):
        return f"Edit {index}: 'new_string' must be a string"
    return None


@tools_base.tool("edit")
class EditTool(tools_base.BaseTool):
    """
    Apply a batch of {old_string, new_string} edits to one workspace file.
    Edits may come in any order; overlaps are resolved and edits that were
    already applied are skipped. Returns a summary for the caller.
    """

    def _settings(self, spec: ToolSpec) -> EngineSettings:
        base = self.workspace.settings
        max_passes = (spec.config or {}).get("max_passes")
        if max_passes is None:
            return base
        return EngineSettings.model_validate(
            {**base.model_dump(), "max_passes": max_passes}
        )

    async def run(self, spec: ToolSpec, args: Any):
        if not isinstance(args, dict):
            return tools_base.ToolTextResponse(
                text=(
                    "Edit tool: ignored call; arguments must be an object "
                    f"(got {type(args).__name__})"
                )
            )

        unknown = _unrecognised_keys(args, _ALLOWED_TOP_KEYS)
        if unknown:
            logger.warning("edit tool: unrecognised argument keys", keys=unknown)

        rel_path = args.get("file_path")
        raw_edits = args.get("edits")
        if not isinstance(rel_path, str) or not isinstance(raw_edits, list):
            preview = repr(args)
            if len(preview) > ARGS_PREVIEW_MAX_CHARS:
                preview = preview[:ARGS_PREVIEW_MAX_CHARS] + " ... (truncated)"
            keys = ", ".join(sorted(str(k) for k in args.keys()))
            return tools_base.ToolTextResponse(
                text=(
                    "Edit tool: ignored call; expected 'file_path' (string) and "
                    f"'edits' (array). Args keys: [{keys}]. Args preview: {preview}"
                )
            )

        edits: List[EditRequest] = []
        for i, raw in enumerate(raw_edits, start=1):
            err = _validate_edit(raw, i)
            if err:
                logger.error("edit tool: invalid edit", error=err)
                return tools_base.ToolTextResponse(text=f"Edit tool error: {err}")
            unknown = _unrecognised_keys(raw, _ALLOWED_EDIT_KEYS)
            if unknown:
                logger.warning("edit tool: unrecognised edit keys", edit=i, keys=unknown)
            edits.append(
                EditRequest(
                    original=raw.get("old_string", raw.get("original")),
                    replacement=raw.get("new_string", raw.get("replacement")),
                )
            )

        try:
            settings = self._settings(spec)
        except ValidationError as e:
            return tools_base.ToolTextResponse(text=f"Edit tool error: invalid config: {e}")

        try:
            outcome = edit_document(
                rel_path, edits, self.workspace.document_ops(), settings
            )
        except EditError as e:
            logger.error("edit tool: document error", path=rel_path, error=str(e))
            return tools_base.ToolTextResponse(text=f"Edit tool error: {e}")

        return tools_base.ToolTextResponse(text=outcome.summary)

    async def openapi_spec(self, spec: ToolSpec) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": (
                "Edit a file relative to the workspace root by applying text "
                "replacements. Whitespace and indentation in 'old_string' are "
                "matched loosely and 'new_string' is re-indented to fit. Edits may "
                "be provided in any order; overlaps are resolved and edits already "
                "applied are skipped. An empty 'old_string' inserts 'new_string' at "
                "the beginning of the file (or creates it)."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "file_path": {
                        "type": "string",
                        "description": "Path of the file to modify or create, relative to the workspace root.",
                    },
                    "edits": {
                        "type": "array",
                        "description": "Edit operations, each with old_string and new_string. Order is not required.",
                        "items": {
                            "type": "object",
                            "properties": {
                                "old_string": {
                                    "type": "string",
                                    "description": "Text block to replace (empty string means insert at beginning of file).",
                                },
                                "new_string": {
                                    "type": "string",
                                    "description": "Replacement text block.",
                                },
                            },
                            "required": ["old_string", "new_string"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["file_path", "edits"],
                "additionalProperties": False,
            },
        }
