from __future__ import annotations

import pytest

from rules.config import ConfigurationError, LayerGuardConfig
from rules.layers import build_allowed_deps, classify_layer, is_violation


def _config(layers: list[dict[str, object]] | None = None) -> LayerGuardConfig:
    if layers is None:
        return LayerGuardConfig()
    return LayerGuardConfig.model_validate({"layers": layers})


def test_classify_layer_default_map() -> None:
    config = _config()

    shared = classify_layer("shared/ui/button.ts", config)
    feature = classify_layer("src/modules/auth/api/login.ts", config)
    route = classify_layer("routes/home.tsx", config)

    assert shared is not None
    assert (shared.layer.name, shared.module_id, shared.module_name) == (
        "shared",
        "shared",
        "shared",
    )
    assert feature is not None
    assert (feature.layer.name, feature.module_id, feature.module_name) == (
        "modules",
        "src/modules/auth",
        "auth",
    )
    assert route is not None
    assert route.module_id == "routes"


def test_classify_layer_returns_none_when_no_prefix_matches() -> None:
    assert classify_layer("scripts/build.ts", _config()) is None


def test_classify_layer_file_directly_under_split_prefix_has_no_module() -> None:
    match = classify_layer("modules/README.ts", _config())

    assert match is not None
    assert match.module_id is None


def test_classify_layer_longest_prefix_within_layer_wins() -> None:
    config = _config(
        [
            {
                "name": "features",
                "kind": "feature",
                "prefixes": ["app/*", "app/legacy/*"],
            }
        ]
    )

    match = classify_layer("app/legacy/orders/list.ts", config)

    assert match is not None
    assert match.module_id == "app/legacy/orders"


def test_classify_layer_non_split_layer_is_one_module_for_all_prefixes() -> None:
    config = _config([{"name": "core", "kind": "core", "prefixes": ["core/", "lib/"]}])

    first = classify_layer("core/a.ts", config)
    second = classify_layer("lib/nested/b.ts", config)

    assert first is not None
    assert second is not None
    assert first.module_id == second.module_id == "core"
    assert first.module_dirs == second.module_dirs == ("core", "lib")


def test_classify_layer_overlap_between_layers_is_ambiguous() -> None:
    config = _config(
        [
            {"name": "app", "kind": "core", "prefixes": ["src/"]},
            {"name": "lib", "kind": "shared", "prefixes": ["src/lib/"]},
        ]
    )

    assert classify_layer("src/main.ts", config) is not None
    with pytest.raises(ConfigurationError, match="Ambiguous layer map"):
        classify_layer("src/lib/strings.ts", config)


def test_build_allowed_deps_default_order() -> None:
    assert build_allowed_deps(_config()) == {
        "shared": set(),
        "core": {"shared"},
        "modules": {"shared", "core", "modules"},
        "routes": {"shared", "core", "modules"},
    }


def test_build_allowed_deps_explicit_may_import_wins() -> None:
    config = _config(
        [
            {"name": "shared", "kind": "shared", "prefixes": ["shared/"]},
            {
                "name": "core",
                "kind": "core",
                "prefixes": ["core/"],
                "may_import": [],
            },
            {
                "name": "routes",
                "kind": "route",
                "prefixes": ["routes/*"],
                "may_import": ["shared", "routes"],
            },
        ]
    )

    assert build_allowed_deps(config) == {
        "shared": set(),
        "core": set(),
        "routes": {"shared", "routes"},
    }


def test_shared_imports_nothing() -> None:
    allowed_deps = build_allowed_deps(_config())

    for target in ("shared", "core", "modules", "routes"):
        assert is_violation("shared", target, allowed_deps) is True


def test_nothing_imports_routes_by_default() -> None:
    allowed_deps = build_allowed_deps(_config())

    for source in ("shared", "core", "modules", "routes"):
        assert is_violation(source, "routes", allowed_deps) is True


def test_lateral_feature_imports_are_allowed() -> None:
    allowed_deps = build_allowed_deps(_config())

    assert is_violation("modules", "modules", allowed_deps) is False
    assert is_violation("core", "modules", allowed_deps) is True
    assert is_violation("modules", "core", allowed_deps) is False
