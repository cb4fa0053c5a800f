"""Go adapter."""

from __future__ import annotations

import posixpath

from .base import Capture, TreeSitterAdapter

# Import names that do not bind a package identifier
_NON_BINDING = {"_", "."}


class GoAdapter(TreeSitterAdapter):
    """Functions, methods (qualified by receiver type), types, vars and consts."""

    language = "go"

    def import_binding(
        self, captures: dict[str, Capture],
    ) -> tuple[str, str, Capture] | None:
        path = captures.get("import.module")
        if path is None:
            return None
        target = path.text.strip("`\"")
        if not target:
            return None
        alias = captures.get("import.alias")
        if alias is not None:
            if alias.text in _NON_BINDING:
                return None
            return alias.text, target, alias
        return posixpath.basename(target), target, path
