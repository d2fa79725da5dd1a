from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from pipeline import analyze
from rules.config import CacheConfig, LayerGuardConfig, ScanConfig
from scan.cache import CACHE_SCHEMA_VERSION, ScanCache
from scan.scanner import scan_project


def _write_repo(root: Path, files: dict[str, str | bytes]) -> None:
    for relpath, content in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")


def test_scan_extracts_declarations_sorted_by_path(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "routes/z.ts": "import { a } from '../shared/a';",
            "shared/a.ts": "export const a = 1;",
            "core/m.ts": "export default 1;",
        },
    )

    result = scan_project(tmp_path, LayerGuardConfig(scan=ScanConfig(workers=4)))

    assert [source.path for source in result.files] == [
        "core/m.ts",
        "routes/z.ts",
        "shared/a.ts",
    ]
    assert result.by_path()["shared/a.ts"].exports == ("a",)
    assert result.by_path()["routes/z.ts"].imports[0].specifier == "../shared/a"
    assert result.warnings == ()


def test_unparsable_and_undecodable_files_become_warnings(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "core/broken.ts": "export const a = 1;\nexport const = ;\n",
            "core/binary.ts": b"\xff\xfe\x00import",
            "core/ok.ts": "export const ok = 1;",
        },
    )

    result = scan_project(tmp_path, LayerGuardConfig())

    assert [source.path for source in result.files] == ["core/ok.ts"]
    binary, broken = result.warnings
    assert (binary.path, binary.line, binary.message) == (
        "core/binary.ts",
        None,
        "not valid UTF-8",
    )
    assert (broken.path, broken.line) == ("core/broken.ts", 2)
    assert broken.message.startswith("syntax error")


def test_parse_warnings_do_not_abort_analysis(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "core/broken.ts": "import { x } from '../modules/a';\n/* never closed",
            "modules/a/index.ts": "export const x = 1;",
        },
    )

    result = analyze(tmp_path)

    assert result.violations == ()
    assert result.summary.parse_warnings == 1
    assert result.summary.files_scanned == 1


def test_unreadable_file_is_retried_then_reported(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_repo(tmp_path, {"core/flaky.ts": "export const a = 1;"})
    attempts: list[Path] = []
    original = Path.read_bytes

    def _failing_read_bytes(self: Path) -> bytes:
        if self.name == "flaky.ts":
            attempts.append(self)
            msg = "busy"
            raise OSError(msg)
        return original(self)

    monkeypatch.setattr(Path, "read_bytes", _failing_read_bytes)

    config = LayerGuardConfig(scan=ScanConfig(read_retries=2))
    result = scan_project(tmp_path, config, retry_delay=0)

    assert len(attempts) == 2
    assert result.files == ()
    (warning,) = result.warnings
    assert warning.path == "core/flaky.ts"
    assert warning.message.startswith("unreadable after 2 attempts")


def test_transient_read_error_recovers(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_repo(tmp_path, {"core/flaky.ts": "export const a = 1;"})
    failures = {"remaining": 1}
    original = Path.read_bytes

    def _flaky_read_bytes(self: Path) -> bytes:
        if self.name == "flaky.ts" and failures["remaining"]:
            failures["remaining"] -= 1
            msg = "busy"
            raise OSError(msg)
        return original(self)

    monkeypatch.setattr(Path, "read_bytes", _flaky_read_bytes)

    result = scan_project(tmp_path, LayerGuardConfig(), retry_delay=0)

    assert [source.path for source in result.files] == ["core/flaky.ts"]
    assert result.warnings == ()


def test_cache_round_trip_reuses_declarations(tmp_path: Path) -> None:
    _write_repo(
        tmp_path,
        {
            "shared/a.ts": "export const a = 1;",
            "core/b.ts": "import { a } from '../shared/a';",
        },
    )
    config = LayerGuardConfig(cache=CacheConfig(enabled=True))

    first = analyze(tmp_path, config)
    cache_path = tmp_path / ".layerguard" / "cache.json"
    assert cache_path.is_file()
    assert set(first.scan.fresh) == {"core/b.ts", "shared/a.ts"}

    (tmp_path / "shared" / "a.ts").write_text("export const a = 2;", encoding="utf-8")
    second = analyze(tmp_path, config)

    assert set(second.scan.fresh) == {"shared/a.ts"}
    assert [source.path for source in second.scan.files] == ["core/b.ts", "shared/a.ts"]
    assert second.scan.by_path()["core/b.ts"].imports == first.scan.by_path()[
        "core/b.ts"
    ].imports


def test_cache_with_unknown_version_is_ignored(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.json"
    cache_path.write_text(
        f'{{"version": {CACHE_SCHEMA_VERSION + 1}, "files": {{"a.ts": {{}}}}}}',
        encoding="utf-8",
    )

    assert len(ScanCache.load(cache_path)) == 0


def test_corrupt_cache_is_ignored(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.json"
    cache_path.write_text("{not json", encoding="utf-8")

    cache = ScanCache.load(cache_path)

    assert len(cache) == 0
    assert cache.lookup("a.ts", "0" * 64) is None


def test_malformed_cache_entries_are_dropped(tmp_path: Path) -> None:
    good = {
        "sha256": "a" * 64,
        "imports": [],
        "exports": ["login"],
    }
    cache_path = tmp_path / "cache.json"
    cache_path.write_bytes(
        orjson.dumps(
            {
                "version": CACHE_SCHEMA_VERSION,
                "files": {
                    "modules/auth/index.ts": [1],
                    "modules/cart/index.ts": {"sha256": "b" * 64, "exports": 5},
                    "modules/pay/index.ts": {
                        "sha256": "c" * 64,
                        "imports": [{"specifier": "./x"}],
                    },
                    "shared/a.ts": good,
                },
            }
        )
    )

    cache = ScanCache.load(cache_path)

    assert len(cache) == 1
    assert cache.lookup("modules/auth/index.ts", "a" * 64) is None
    assert cache.lookup("modules/cart/index.ts", "b" * 64) is None
    declarations = cache.lookup("shared/a.ts", "a" * 64)
    assert declarations is not None
    assert declarations.exports == ("login",)
