"""Python adapter."""

from __future__ import annotations

from .base import Capture, TreeSitterAdapter


class PythonAdapter(TreeSitterAdapter):
    """Functions, classes, methods (qualified by class) and module-level assignments."""

    language = "python"

    def import_binding(
        self, captures: dict[str, Capture],
    ) -> tuple[str, str, Capture] | None:
        module = captures.get("import.module")
        if module is None:
            return None
        name = captures.get("import.name")
        alias = captures.get("import.alias")

        if name is not None:
            # from pkg import name [as alias]
            sep = "" if module.text.endswith(".") else "."  # from . import x
            target = f"{module.text}{sep}{name.text}"
            located = alias or name
            return located.text, target, located
        if alias is not None:
            return alias.text, module.text, alias
        # import pkg.sub binds "pkg"
        return module.text.split(".")[0], module.text, module

    def imported_name(self, target: str) -> str | None:
        return target.rsplit(".", 1)[-1] or None
