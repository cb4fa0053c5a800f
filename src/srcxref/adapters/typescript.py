"""TypeScript adapter."""

from __future__ import annotations

from .base import Capture, TreeSitterAdapter

# Separates module specifier and exported name in import targets
EXPORT_SEPARATOR = "#"


class TypeScriptAdapter(TreeSitterAdapter):
    """Functions, classes, methods (qualified by class), interfaces, enums,
    type aliases and variables."""

    language = "typescript"

    def import_binding(
        self, captures: dict[str, Capture],
    ) -> tuple[str, str, Capture] | None:
        module = captures.get("import.module")
        if module is None:
            return None
        specifier = module.text.strip("\"'`")
        name = captures.get("import.name")
        alias = captures.get("import.alias")

        if name is not None:
            # import { name [as alias] } from "specifier"
            located = alias or name
            return located.text, f"{specifier}{EXPORT_SEPARATOR}{name.text}", located
        if alias is None:
            return None
        return alias.text, specifier, alias

    def imported_name(self, target: str) -> str | None:
        _, sep, name = target.rpartition(EXPORT_SEPARATOR)
        return name if sep else None
