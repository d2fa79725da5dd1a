"""Tree-sitter based import/export extraction for JavaScript and TypeScript.

Only references with a literal module specifier are recorded: import and
export statements, ``require("x")`` calls and dynamic ``import("x")``.
Expression-level usage of the imported names is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from models.source import (
    DEFAULT_SYMBOL,
    NAMESPACE_SYMBOL,
    ImportKind,
    ImportSpecifier,
)

Grammar = Literal["javascript", "typescript", "tsx"]

_TYPESCRIPT_EXTENSIONS = (".ts", ".mts", ".cts")

_LANGUAGES: dict[str, Language] = {}

# Declarations nested inside 'export declare ...'.
_AMBIENT_WRAPPERS = frozenset({"ambient_declaration"})
_VARIABLE_DECLARATIONS = frozenset({"lexical_declaration", "variable_declaration"})


class ParseError(Exception):
    """Raised when tree-sitter reports a syntax error in a source file."""

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message if line is None else f"line {line}: {message}")
        self.message = message
        self.line = line


@dataclass(frozen=True)
class Declarations:
    """Imports and exported names found in one file."""

    imports: tuple[ImportSpecifier, ...]
    exports: tuple[str, ...]


def grammar_for_path(path: str) -> Grammar:
    """Pick the grammar for a file from its extension.

    ``.ts/.mts/.cts`` use TypeScript, ``.tsx`` uses TSX and everything else
    (``.js``, ``.jsx``, ``.mjs``, ``.cjs``) uses JavaScript, which accepts JSX.
    """
    if path.endswith(".tsx"):
        return "tsx"
    if path.endswith(_TYPESCRIPT_EXTENSIONS):
        return "typescript"
    return "javascript"


def _get_language(grammar: Grammar) -> Language:
    language = _LANGUAGES.get(grammar)
    if language is None:
        if grammar == "javascript":
            language = Language(tree_sitter_javascript.language())
        elif grammar == "tsx":
            language = Language(tree_sitter_typescript.language_tsx())
        else:
            language = Language(tree_sitter_typescript.language_typescript())
        _LANGUAGES[grammar] = language
    return language


def _first_error(root: Node) -> Node | None:
    """The first ERROR or MISSING node in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        stack.extend(reversed([child for child in node.children if child.has_error]))
    return None


def _text(node: Node) -> str:
    return node.text.decode("utf-8") if node.text else ""


def _name_text(node: Node | None) -> str | None:
    """Text of an identifier-like node; string names lose their quotes."""
    if node is None:
        return None
    if node.type == "string":
        return _string_value(node)
    text = _text(node)
    return text or None


def _string_value(node: Node) -> str | None:
    """Value of a string literal, or of a template without substitutions."""
    if node.type == "string":
        return _text(node)[1:-1]
    if node.type == "template_string" and not any(
        child.type == "template_substitution" for child in node.named_children
    ):
        return _text(node)[1:-1]
    return None


def _named_child(node: Node, node_type: str) -> Node | None:
    return next((c for c in node.named_children if c.type == node_type), None)


def _has_keyword(node: Node, keyword: str) -> bool:
    return any(child.type == keyword and not child.is_named for child in node.children)


def _binding_names(node: Node | None) -> list[str]:
    """Names bound by a declarator target, including destructuring patterns."""
    if node is None:
        return []
    if node.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [_text(node)]
    if node.type == "pair_pattern":
        return _binding_names(node.child_by_field_name("value"))
    if node.type in ("assignment_pattern", "object_assignment_pattern"):
        return _binding_names(node.child_by_field_name("left"))
    if node.type in ("object_pattern", "array_pattern", "rest_pattern"):
        names: list[str] = []
        for child in node.named_children:
            names.extend(_binding_names(child))
        return names
    return []


def _declared_names(node: Node) -> list[str]:
    """Names introduced by an exported declaration."""
    if node.type in _AMBIENT_WRAPPERS:
        names: list[str] = []
        for child in node.named_children:
            names.extend(_declared_names(child))
        return names
    if node.type in _VARIABLE_DECLARATIONS:
        names = []
        for declarator in node.named_children:
            if declarator.type == "variable_declarator":
                names.extend(_binding_names(declarator.child_by_field_name("name")))
        return names
    if node.type == "import_alias":
        first = next(iter(node.named_children), None)
        return [_text(first)] if first is not None else []

    name = node.child_by_field_name("name")
    if name is None or name.type == "string":
        return []
    if name.type == "nested_identifier":
        return [_text(name).split(".", 1)[0]]
    return [_text(name)]


def _require_symbols(call: Node) -> list[str]:
    """Names taken from a require() call by destructuring or member access."""
    parent = call.parent
    if parent is None:
        return []
    if parent.type == "member_expression":
        if parent.child_by_field_name("object") != call:
            return []
        prop = parent.child_by_field_name("property")
        return [_text(prop)] if prop is not None else []
    if parent.type != "variable_declarator":
        return []
    if parent.child_by_field_name("value") != call:
        return []
    pattern = parent.child_by_field_name("name")
    if pattern is None or pattern.type != "object_pattern":
        return []

    names: list[str] = []
    for child in pattern.named_children:
        if child.type == "shorthand_property_identifier_pattern":
            names.append(_text(child))
        elif child.type == "pair_pattern":
            key = _name_text(child.child_by_field_name("key"))
            if key:
                names.append(key)
        elif child.type == "object_assignment_pattern":
            names.extend(_binding_names(child.child_by_field_name("left")))
        elif child.type == "rest_pattern":
            # '...rest' takes everything that is left
            names.append(NAMESPACE_SYMBOL)
    return names


class _DeclarationCollector:
    def __init__(self, source: bytes) -> None:
        self.source = source
        self.imports: list[ImportSpecifier] = []
        self.exports: set[str] = set()

    def _position(self, node: Node) -> tuple[int, int]:
        """1-based line and character column of ``node``."""
        row, byte_column = node.start_point[0], node.start_point[1]
        line_start = node.start_byte - byte_column
        prefix = self.source[line_start : node.start_byte]
        return row + 1, len(prefix.decode("utf-8", errors="replace")) + 1

    def _add(
        self,
        specifier: str,
        symbols: list[str],
        kind: ImportKind,
        anchor: Node,
        *,
        type_only: bool = False,
        reexport_all: bool = False,
    ) -> None:
        line, column = self._position(anchor)
        self.imports.append(
            ImportSpecifier(
                specifier=specifier,
                symbols=tuple(dict.fromkeys(symbols)),
                kind=kind,
                reexport_all=reexport_all,
                type_only=type_only,
                line=line,
                column=column,
            )
        )

    def collect(self, root: Node) -> Declarations:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "import_statement":
                self._import_statement(node)
            elif node.type == "export_statement":
                self._export_statement(node)
            elif node.type == "call_expression":
                self._call_expression(node)
            stack.extend(reversed(node.named_children))
        return Declarations(
            imports=tuple(self.imports),
            exports=tuple(sorted(self.exports)),
        )

    def _import_statement(self, node: Node) -> None:
        type_only = _has_keyword(node, "type")
        require_clause = _named_child(node, "import_require_clause")
        if require_clause is not None:
            # import x = require('y')
            source = require_clause.child_by_field_name("source")
            spec = _string_value(source) if source is not None else None
            if spec is not None:
                self._add(
                    spec, [NAMESPACE_SYMBOL], "require", node, type_only=type_only
                )
            return

        source = node.child_by_field_name("source")
        spec = _string_value(source) if source is not None else None
        if spec is None:
            return

        symbols: list[str] = []
        clause = _named_child(node, "import_clause")
        if clause is not None:
            for child in clause.named_children:
                if child.type == "identifier":
                    symbols.append(DEFAULT_SYMBOL)
                elif child.type == "namespace_import":
                    symbols.append(NAMESPACE_SYMBOL)
                elif child.type == "named_imports":
                    for item in child.named_children:
                        if item.type != "import_specifier":
                            continue
                        name = _name_text(item.child_by_field_name("name"))
                        if name:
                            symbols.append(name)
        self._add(spec, symbols, "import", node, type_only=type_only)

    def _export_statement(self, node: Node) -> None:
        anchor = next((c for c in node.children if c.type == "export"), node)
        if _has_keyword(node, "default") or _has_keyword(node, "="):
            self.exports.add(DEFAULT_SYMBOL)
            return

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            self.exports.update(_declared_names(declaration))
            return

        source = node.child_by_field_name("source")
        spec = _string_value(source) if source is not None else None
        type_only = _has_keyword(node, "type")

        clause = _named_child(node, "export_clause")
        if clause is not None:
            originals: list[str] = []
            for item in clause.named_children:
                if item.type != "export_specifier":
                    continue
                original = _name_text(item.child_by_field_name("name"))
                alias = _name_text(item.child_by_field_name("alias"))
                if not original:
                    continue
                originals.append(original)
                self.exports.add(alias or original)
            if spec is not None:
                self._add(spec, originals, "reexport", anchor, type_only=type_only)
            return

        if spec is None:
            return
        namespace = _named_child(node, "namespace_export")
        if namespace is not None:
            # export * as ns from 'x'
            if namespace.named_children:
                name = _name_text(namespace.named_children[-1])
                if name:
                    self.exports.add(name)
            self._add(
                spec, [NAMESPACE_SYMBOL], "reexport", anchor, type_only=type_only
            )
        elif _has_keyword(node, "*"):
            self._add(
                spec,
                [NAMESPACE_SYMBOL],
                "reexport",
                anchor,
                type_only=type_only,
                reexport_all=True,
            )

    def _call_expression(self, node: Node) -> None:
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is None or arguments is None:
            return
        args = [arg for arg in arguments.named_children if arg.type != "comment"]
        if not args:
            return
        spec = _string_value(args[0])
        if spec is None:
            return

        if function.type == "import":
            self._add(spec, [NAMESPACE_SYMBOL], "dynamic", node)
        elif function.type == "identifier" and _text(function) == "require":
            if len(args) != 1:
                return
            symbols = _require_symbols(node) or [NAMESPACE_SYMBOL]
            self._add(spec, symbols, "require", node)


def extract_declarations(text: str, *, grammar: Grammar = "typescript") -> Declarations:
    """Extract import specifiers and exported names from source text.

    Args:
        text: JavaScript or TypeScript source.
        grammar: Tree-sitter grammar to parse with (see grammar_for_path).

    Returns:
        Declarations with imports in source order and sorted export names.

    Raises:
        ParseError: If the parse tree contains a syntax error.
    """
    source = text.encode("utf-8")
    # Parsers are not shared between scanner threads.
    parser = Parser(_get_language(grammar))
    tree = parser.parse(source)

    root = tree.root_node
    if root.has_error:
        error = _first_error(root)
        if error is None:
            raise ParseError("syntax error")
        line = error.start_point[0] + 1
        if error.is_missing:
            raise ParseError(f"syntax error: missing {error.type}", line)
        raise ParseError("syntax error", line)

    return _DeclarationCollector(source).collect(root)


__all__ = [
    "Declarations",
    "Grammar",
    "ParseError",
    "extract_declarations",
    "grammar_for_path",
]
