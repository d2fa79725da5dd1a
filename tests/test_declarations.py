from __future__ import annotations

import pytest

from parse.treesitter_declarations import (
    ParseError,
    extract_declarations,
    grammar_for_path,
)


def _imports(text: str) -> list[tuple[str, tuple[str, ...], str]]:
    return [
        (spec.specifier, spec.symbols, spec.kind)
        for spec in extract_declarations(text).imports
    ]


def test_static_import_forms() -> None:
    text = "\n".join(
        [
            "import Default from './a';",
            "import { x, y as z } from './b';",
            "import * as ns from './c';",
            "import Def, { w } from './d';",
            "import './e.css';",
        ]
    )

    assert _imports(text) == [
        ("./a", ("default",), "import"),
        ("./b", ("x", "y"), "import"),
        ("./c", ("*",), "import"),
        ("./d", ("default", "w"), "import"),
        ("./e.css", (), "import"),
    ]


def test_type_only_imports_are_flagged() -> None:
    declarations = extract_declarations(
        "import type { Props } from './types';\nimport { type Id, name } from './ids';"
    )

    first, second = declarations.imports
    assert first.type_only is True
    assert first.symbols == ("Props",)
    assert second.type_only is False
    assert second.symbols == ("Id", "name")


def test_require_and_dynamic_import() -> None:
    text = "\n".join(
        [
            "const fs = require('fs');",
            "const { a, b: renamed } = require('./lib');",
            "const c = require('./other').c;",
            "const lazy = import('./lazy');",
            "import legacy = require('./legacy');",
        ]
    )

    assert _imports(text) == [
        ("fs", ("*",), "require"),
        ("./lib", ("a", "b"), "require"),
        ("./other", ("c",), "require"),
        ("./lazy", ("*",), "dynamic"),
        ("./legacy", ("*",), "require"),
    ]


def test_dynamic_import_skips_leading_comment() -> None:
    text = "const page = import(/* webpackChunkName: 'page' */ './page');"

    assert _imports(text) == [("./page", ("*",), "dynamic")]


def test_non_literal_specifiers_are_ignored() -> None:
    text = "require(name);\nimport(`./${page}`);\nconst u = import.meta.url;"

    assert _imports(text) == []


def test_member_named_require_is_not_an_import() -> None:
    assert _imports("loader.require('./x');\nobj.import('./y');") == []


def test_imports_inside_strings_and_comments_are_ignored() -> None:
    text = "\n".join(
        [
            "const s = \"import x from './fake'\";",
            "// require('./commented')",
            "const t = `require('./templated')`;",
        ]
    )

    assert _imports(text) == []


def test_postfix_increment_before_division_is_not_a_regex() -> None:
    text = "\n".join(
        [
            "import { login } from '../modules/auth';",
            "let i = 1;",
            "export const half = i++ / 2;",
            "export const rate = i-- / 4 / 2;",
        ]
    )

    declarations = extract_declarations(text)

    assert [spec.specifier for spec in declarations.imports] == ["../modules/auth"]
    assert declarations.exports == ("half", "rate")


def test_export_forms() -> None:
    text = "\n".join(
        [
            "export const A = 1, ignored = 2;",
            "export let { B, nested: { C } } = obj;",
            "export function fn() {}",
            "export function* gen() {}",
            "export async function run() {}",
            "export class Widget {}",
            "export abstract class Base {}",
            "export interface Shape {}",
            "export type Alias = string;",
            "export enum Color { Red }",
            "export const enum Flag { On }",
            "export declare const D: number;",
            "const local = 1;",
            "export { local as renamed };",
            "export default Widget;",
        ]
    )

    declarations = extract_declarations(text)

    assert declarations.exports == (
        "A",
        "Alias",
        "B",
        "Base",
        "C",
        "Color",
        "D",
        "Flag",
        "Shape",
        "Widget",
        "default",
        "fn",
        "gen",
        "ignored",
        "renamed",
        "run",
    )
    assert declarations.imports == ()


def test_reexports() -> None:
    text = "\n".join(
        [
            "export { a, b as c } from './ab';",
            "export * from './all';",
            "export * as tools from './tools';",
            "export type { T } from './types';",
        ]
    )

    declarations = extract_declarations(text)

    assert [
        (spec.specifier, spec.symbols, spec.kind, spec.reexport_all, spec.type_only)
        for spec in declarations.imports
    ] == [
        ("./ab", ("a", "b"), "reexport", False, False),
        ("./all", ("*",), "reexport", True, False),
        ("./tools", ("*",), "reexport", False, False),
        ("./types", ("T",), "reexport", False, True),
    ]
    assert set(declarations.exports) == {"a", "c", "tools", "T"}


def test_import_locations_point_at_keyword() -> None:
    declarations = extract_declarations("\n\n  import x from './x';")

    (spec,) = declarations.imports
    assert (spec.line, spec.column) == (3, 3)


def test_columns_count_characters_not_bytes() -> None:
    declarations = extract_declarations("const é = 1; import x from './x';")

    (spec,) = declarations.imports
    assert (spec.line, spec.column) == (1, 14)


@pytest.mark.parametrize("grammar", ["tsx", "javascript"])
def test_jsx_text_parses_with_jsx_grammars(grammar: str) -> None:
    text = "import A from './a';\nexport const el = <p>It's here</p>;\n"

    declarations = extract_declarations(text, grammar=grammar)  # type: ignore[arg-type]

    assert [spec.specifier for spec in declarations.imports] == ["./a"]
    assert declarations.exports == ("el",)


def test_syntax_error_raises_with_line() -> None:
    with pytest.raises(ParseError) as exc_info:
        extract_declarations("export const a = 1;\nexport const = ;\n")

    assert exc_info.value.line == 2
    assert exc_info.value.message.startswith("syntax error")


def test_unterminated_block_comment_is_a_syntax_error() -> None:
    with pytest.raises(ParseError):
        extract_declarations("import a from './a';\n/* never closed")


@pytest.mark.parametrize(
    ("path", "grammar"),
    [
        ("core/a.ts", "typescript"),
        ("core/a.d.ts", "typescript"),
        ("core/a.mts", "typescript"),
        ("routes/page.tsx", "tsx"),
        ("shared/util.js", "javascript"),
        ("shared/view.jsx", "javascript"),
        ("shared/config.cjs", "javascript"),
    ],
)
def test_grammar_for_path(path: str, grammar: str) -> None:
    assert grammar_for_path(path) == grammar
