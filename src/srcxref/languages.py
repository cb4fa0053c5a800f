"""Tree-sitter grammar loading and per-language extraction queries."""

from __future__ import annotations

import importlib
from dataclasses import dataclass

from tree_sitter import Language

# Lazy-loaded language modules
_LANGUAGES: dict[str, Language] = {}


@dataclass
class LanguageConfig:
    """Configuration for a supported language."""
    name: str
    tag: str  # short identity prefix, e.g. "py"
    extensions: tuple[str, ...]
    loader: str  # module path for tree-sitter grammar
    loader_fn: str
    # tree-sitter query patterns
    defs_query: str
    refs_query: str
    imports_query: str


# Capture conventions shared by every language:
#   <prefix>.name       identifier naming a definition (kind derived from prefix)
#   <prefix>.def        the whole defining node
#   <prefix>.container  optional enclosing type (receiver, class)
#   import.module / import.name / import.alias / import.stmt
#   ref                 any identifier usage

_PYTHON_DEFS = """
(function_definition
    name: (identifier) @fn.name) @fn.def

(class_definition
    name: (identifier) @cls.name) @cls.def

(class_definition
    name: (identifier) @method.container
    body: (block
        (function_definition
            name: (identifier) @method.name) @method.def))

(class_definition
    name: (identifier) @method.container
    body: (block
        (decorated_definition
            definition: (function_definition
                name: (identifier) @method.name) @method.def)))

(module
    (expression_statement
        (assignment
            left: (identifier) @var.name) @var.def))
"""

_PYTHON_REFS = """
(identifier) @ref
"""

_PYTHON_IMPORTS = """
(import_statement
    name: (dotted_name) @import.module) @import.stmt

(import_statement
    name: (aliased_import
        name: (dotted_name) @import.module
        alias: (identifier) @import.alias)) @import.stmt

(import_from_statement
    module_name: (_) @import.module
    name: (dotted_name) @import.name) @import.stmt

(import_from_statement
    module_name: (_) @import.module
    name: (aliased_import
        name: (dotted_name) @import.name
        alias: (identifier) @import.alias)) @import.stmt
"""

_GO_DEFS = """
(function_declaration
    name: (identifier) @fn.name) @fn.def

(method_declaration
    receiver: (parameter_list
        (parameter_declaration
            type: [
                (type_identifier) @method.container
                (pointer_type (type_identifier) @method.container)
                (generic_type type: (type_identifier) @method.container)
                (pointer_type (generic_type type: (type_identifier) @method.container))
            ]))
    name: (field_identifier) @method.name) @method.def

(type_spec
    name: (type_identifier) @type.name) @type.def

(var_spec
    name: (identifier) @var.name) @var.def

(const_spec
    name: (identifier) @const.name) @const.def
"""

_GO_REFS = """
[
    (identifier)
    (type_identifier)
    (field_identifier)
] @ref
"""

_GO_IMPORTS = """
(import_spec
    name: (_) @import.alias
    path: (_) @import.module) @import.stmt

(import_spec
    !name
    path: (_) @import.module) @import.stmt
"""

_TS_DEFS = """
(function_declaration
    name: (identifier) @fn.name) @fn.def

(class_declaration
    name: (type_identifier) @cls.name) @cls.def

(abstract_class_declaration
    name: (type_identifier) @cls.name) @cls.def

(interface_declaration
    name: (type_identifier) @iface.name) @iface.def

(enum_declaration
    name: (identifier) @enum.name) @enum.def

(type_alias_declaration
    name: (type_identifier) @type.name) @type.def

(variable_declarator
    name: (identifier) @var.name) @var.def

(class_declaration
    name: (type_identifier) @method.container
    body: (class_body
        (method_definition
            name: (property_identifier) @method.name) @method.def))
"""

_TS_REFS = """
[
    (identifier)
    (type_identifier)
    (property_identifier)
] @ref
"""

_TS_IMPORTS = """
(import_statement
    (import_clause
        (identifier) @import.alias)
    source: (string) @import.module) @import.stmt

(import_statement
    (import_clause
        (namespace_import
            (identifier) @import.alias))
    source: (string) @import.module) @import.stmt

(import_statement
    (import_clause
        (named_imports
            (import_specifier
                name: (identifier) @import.name
                alias: (identifier) @import.alias)))
    source: (string) @import.module) @import.stmt

(import_statement
    (import_clause
        (named_imports
            (import_specifier
                name: (identifier) @import.name
                !alias)))
    source: (string) @import.module) @import.stmt
"""


LANGUAGES: dict[str, LanguageConfig] = {
    "go": LanguageConfig(
        name="go",
        tag="go",
        extensions=(".go",),
        loader="tree_sitter_go",
        loader_fn="language",
        defs_query=_GO_DEFS,
        refs_query=_GO_REFS,
        imports_query=_GO_IMPORTS,
    ),
    "typescript": LanguageConfig(
        name="typescript",
        tag="ts",
        extensions=(".ts", ".mts", ".cts"),
        loader="tree_sitter_typescript",
        loader_fn="language_typescript",
        defs_query=_TS_DEFS,
        refs_query=_TS_REFS,
        imports_query=_TS_IMPORTS,
    ),
    "python": LanguageConfig(
        name="python",
        tag="py",
        extensions=(".py", ".pyi"),
        loader="tree_sitter_python",
        loader_fn="language",
        defs_query=_PYTHON_DEFS,
        refs_query=_PYTHON_REFS,
        imports_query=_PYTHON_IMPORTS,
    ),
}


def get_language(name: str) -> Language | None:
    """Get a tree-sitter Language object by name. Lazy-loads the grammar."""
    if name in _LANGUAGES:
        return _LANGUAGES[name]

    config = LANGUAGES.get(name)
    if config is None:
        return None

    try:
        mod = importlib.import_module(config.loader)
        lang = Language(getattr(mod, config.loader_fn)())
    except (ImportError, AttributeError):
        return None
    _LANGUAGES[name] = lang
    return lang
