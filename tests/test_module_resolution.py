from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from models.modules import Layer
from pipeline import analyze
from resolve.modules import find_barrel
from rules.config import DEFAULT_EXTENSIONS, ConfigurationError, LayerGuardConfig

if TYPE_CHECKING:
    from pathlib import Path


def _write_repo(root: Path, files: dict[str, str]) -> None:
    for relpath, content in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def test_find_barrel_prefers_extension_order() -> None:
    files = [
        "modules/auth/index.js",
        "modules/auth/index.ts",
        "modules/auth/nested/index.ts",
    ]

    assert (
        find_barrel(("modules/auth",), files, "index", DEFAULT_EXTENSIONS)
        == "modules/auth/index.ts"
    )
    assert find_barrel(("modules/cart",), files, "index", DEFAULT_EXTENSIONS) is None


def test_find_barrel_accepts_glob_pattern() -> None:
    files = ["modules/auth/public-api.ts", "modules/auth/store.ts"]

    assert (
        find_barrel(("modules/auth",), files, "public-*", DEFAULT_EXTENSIONS)
        == "modules/auth/public-api.ts"
    )


def test_modules_layers_and_files(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "shared/a.ts": "export const a = 1;",
            "shared/deep/b.ts": "export const b = 2;",
            "core/c.ts": "export const c = 3;",
            "modules/auth/index.ts": "export { login } from './login';",
            "modules/auth/login.ts": "export function login() {}",
            "modules/cart/cart.ts": "export const cart = [];",
            "routes/home.tsx": "export default function Home() {}",
        },
    )

    result = analyze(tmp_path)
    modules = {module.id: module for module in result.module_map.modules}

    assert sorted(modules) == [
        "core",
        "modules/auth",
        "modules/cart",
        "routes",
        "shared",
    ]
    assert modules["shared"].layer is Layer.SHARED
    assert modules["shared"].files == ("shared/a.ts", "shared/deep/b.ts")
    assert modules["modules/auth"].name == "auth"
    assert modules["modules/auth"].barrel == "modules/auth/index.ts"
    assert modules["modules/auth"].public_surface == ("login",)
    assert modules["modules/cart"].barrel is None
    assert modules["modules/cart"].public_surface == ()
    assert modules["routes"].layer is Layer.ROUTE
    login_module = result.module_map.module_of("modules/auth/login.ts")
    assert login_module == modules["modules/auth"]


def test_public_surface_follows_star_reexports(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "modules/ui/index.ts": (
                "export * from './widgets';\nexport * as icons from './icons';"
            ),
            "modules/ui/widgets/index.ts": (
                "export * from './button';\nexport default function Root() {}"
            ),
            "modules/ui/widgets/button.ts": (
                "export const Button = 1;\nexport * from '../index';"
            ),
            "modules/ui/icons.ts": "export const Star = 1;",
        },
    )

    result = analyze(tmp_path)
    (module,) = result.module_map.modules

    # 'default' is never forwarded by 'export *'; the re-export loop is cut.
    assert module.public_surface == ("Button", "icons")


def test_unassigned_files_are_reported_and_excluded(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "scripts/build.ts": "import { a } from '../shared/a';",
            "modules/loose.ts": "export const loose = 1;",
            "shared/a.ts": "export const a = 1;",
        },
    )

    result = analyze(tmp_path)

    assert [item.path for item in result.module_map.unassigned] == [
        "modules/loose.ts",
        "scripts/build.ts",
    ]
    assert result.graph.edges == ()
    assert result.violations == ()
    assert result.summary.files_scanned == 3


def test_overlapping_layer_map_is_a_configuration_error(tmp_path: Path) -> None:
    _write_repo(tmp_path, {"src/lib/x.ts": "export const x = 1;"})
    config = LayerGuardConfig.model_validate(
        {
            "layers": [
                {"name": "app", "kind": "core", "prefixes": ["src/"]},
                {"name": "lib", "kind": "shared", "prefixes": ["src/lib/"]},
            ]
        }
    )

    with pytest.raises(ConfigurationError, match="Ambiguous layer map"):
        analyze(tmp_path, config)


def test_find_barrel_searches_every_directory_of_a_layer_module() -> None:
    files = ["core/http.ts", "src/core/index.ts"]

    assert (
        find_barrel(("core", "src/core"), files, "index", DEFAULT_EXTENSIONS)
        == "src/core/index.ts"
    )


def test_non_split_layer_is_one_module_across_prefixes(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "core/a.ts": "import { b } from '../lib/b';\nexport const a = b;",
            "lib/b.ts": "export const b = 1;",
        },
    )
    config = LayerGuardConfig.model_validate(
        {"layers": [{"name": "core", "kind": "core", "prefixes": ["core/", "lib/"]}]}
    )

    result = analyze(tmp_path, config)

    (module,) = result.module_map.modules
    assert (module.id, module.name) == ("core", "core")
    assert module.files == ("core/a.ts", "lib/b.ts")
    assert result.graph.edges == ()
    assert result.violations == ()


def test_default_map_merges_root_and_src_prefixes(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "shared/a.ts": "export const a = 1;",
            "src/shared/b.ts": "import { a } from '../../shared/a';",
            "src/shared/nested/c.ts": "export const c = 3;",
        },
    )

    result = analyze(tmp_path)

    (module,) = result.module_map.modules
    assert module.id == "shared"
    assert module.files == ("shared/a.ts", "src/shared/b.ts", "src/shared/nested/c.ts")
    assert result.violations == ()


def test_unparsable_barrel_is_recorded_on_the_module(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "modules/cart/index.ts": "export const = ;",
            "modules/cart/cart.ts": "export const cart = [];",
        },
    )

    result = analyze(tmp_path)

    (module,) = result.module_map.modules
    assert module.barrel is None
    assert module.unparsable_barrel == "modules/cart/index.ts"
    assert [w.path for w in result.module_map.parse_warnings] == [
        "modules/cart/index.ts"
    ]
