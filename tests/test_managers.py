"""
Tests for manager resolution and command construction.
"""

import asyncio
import json
from pathlib import Path

import pytest

from polyinstall.adapters.mock import MockRunner
from polyinstall.core.models import CommandOutcome, PackageManager
from polyinstall.core.services.managers import (
    InstallOptions,
    build_cache_clean_args,
    build_install_args,
    build_uninstall_args,
    detect_available_managers,
    detect_from_lock_file,
    detect_from_manifest,
    installed_package_version,
    manager_version,
    resolve_manager,
)

NPM, YARN, PNPM, BUN = (
    PackageManager.NPM,
    PackageManager.YARN,
    PackageManager.PNPM,
    PackageManager.BUN,
)


def _exists(*names):
    return lambda name: name in names


def _manifest(directory: Path, data) -> None:
    (directory / "package.json").write_text(json.dumps(data))


# ── Evidence ────────────────────────────────────────────────────


class TestLockFileDetection:
    @pytest.mark.parametrize("filename, manager", [
        ("package-lock.json", NPM),
        ("yarn.lock", YARN),
        ("pnpm-lock.yaml", PNPM),
        ("bun.lockb", BUN),
        ("bun.lock", BUN),
    ])
    def test_each_lock_file(self, tmp_path, filename, manager):
        (tmp_path / filename).write_text("")
        assert detect_from_lock_file(tmp_path) == manager

    def test_none(self, tmp_path):
        assert detect_from_lock_file(tmp_path) is None

    def test_first_in_order_wins(self, tmp_path):
        (tmp_path / "pnpm-lock.yaml").write_text("")
        (tmp_path / "package-lock.json").write_text("{}")
        assert detect_from_lock_file(tmp_path) == NPM


class TestManifestDetection:
    def test_package_manager_field(self, tmp_path):
        _manifest(tmp_path, {"packageManager": "pnpm@9.1.0"})
        assert detect_from_manifest(tmp_path) == PNPM

    def test_unknown_package_manager_field(self, tmp_path):
        _manifest(tmp_path, {"packageManager": "deno@1.0"})
        assert detect_from_manifest(tmp_path) is None

    def test_engines_order(self, tmp_path):
        _manifest(tmp_path, {"engines": {"bun": ">=1", "yarn": ">=4"}})
        assert detect_from_manifest(tmp_path) == YARN

    def test_field_beats_engines(self, tmp_path):
        _manifest(tmp_path, {"packageManager": "bun@1.1.0", "engines": {"pnpm": "9"}})
        assert detect_from_manifest(tmp_path) == BUN

    def test_malformed_json_is_no_evidence(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json")
        assert detect_from_manifest(tmp_path) is None

    def test_non_object_is_no_evidence(self, tmp_path):
        _manifest(tmp_path, ["npm"])
        assert detect_from_manifest(tmp_path) is None

    def test_missing(self, tmp_path):
        assert detect_from_manifest(tmp_path) is None


class TestAvailableManagers:
    def test_probe_order(self):
        assert detect_available_managers(_exists("bun", "npm")) == [NPM, BUN]

    def test_none(self):
        assert detect_available_managers(_exists()) == []


# ── Resolution priority ─────────────────────────────────────────


class TestResolveManager:
    def test_available_preference_beats_all_evidence(self, tmp_path):
        (tmp_path / "yarn.lock").write_text("")
        _manifest(tmp_path, {"packageManager": "pnpm@9"})
        result = resolve_manager(tmp_path, BUN, _exists("npm", "yarn", "pnpm", "bun"))
        assert result == BUN

    def test_unavailable_preference_falls_through(self, tmp_path):
        (tmp_path / "yarn.lock").write_text("")
        assert resolve_manager(tmp_path, BUN, _exists("npm", "yarn")) == YARN

    def test_lock_file_beats_manifest(self, tmp_path):
        (tmp_path / "yarn.lock").write_text("")
        _manifest(tmp_path, {"packageManager": "pnpm@9"})
        assert resolve_manager(tmp_path, None, _exists("yarn", "pnpm")) == YARN

    def test_unavailable_lock_manager_falls_through(self, tmp_path):
        (tmp_path / "yarn.lock").write_text("")
        _manifest(tmp_path, {"packageManager": "pnpm@9"})
        assert resolve_manager(tmp_path, None, _exists("pnpm")) == PNPM

    def test_first_available(self, tmp_path):
        assert resolve_manager(tmp_path, None, _exists("pnpm", "bun")) == PNPM

    def test_hard_default(self, tmp_path):
        assert resolve_manager(tmp_path, None, _exists()) == NPM

    def test_no_caching(self, tmp_path):
        available = {"yarn"}
        exists = lambda name: name in available  # noqa: E731
        assert resolve_manager(tmp_path, None, exists) == YARN
        available.add("npm")
        assert resolve_manager(tmp_path, None, exists) == NPM


# ── Command construction ────────────────────────────────────────


class TestBuildInstallArgs:
    def test_npm_plain(self):
        assert build_install_args(NPM, ["a"]) == ["npm", "install", "a"]

    def test_npm_all_flags(self):
        opts = InstallOptions(global_=True, dev=True, exact=True, force=True,
                              offline=True, registry="https://r.example")
        assert build_install_args(NPM, ["a@1"], opts) == [
            "npm", "install", "-g", "--save-dev", "--save-exact", "--force",
            "--offline", "--registry=https://r.example", "a@1",
        ]

    def test_pnpm(self):
        opts = InstallOptions(global_=True, dev=True)
        assert build_install_args(PNPM, ["a"], opts) == ["pnpm", "add", "-g", "--save-dev", "a"]

    def test_yarn_global_is_subcommand(self):
        opts = InstallOptions(global_=True)
        assert build_install_args(YARN, ["a"], opts) == ["yarn", "global", "add", "a"]

    def test_yarn_dev_exact(self):
        opts = InstallOptions(dev=True, exact=True)
        assert build_install_args(YARN, ["a"], opts) == ["yarn", "add", "--dev", "--exact", "a"]

    def test_bun_has_no_offline(self):
        opts = InstallOptions(dev=True, offline=True, force=True)
        assert build_install_args(BUN, ["a"], opts) == ["bun", "add", "--dev", "--force", "a"]

    def test_scoped_package_is_single_token(self):
        assert build_install_args(NPM, ["@types/node@20"])[-1] == "@types/node@20"

    def test_multiple_packages_keep_order(self):
        assert build_install_args(PNPM, ["b", "a"])[-2:] == ["b", "a"]


class TestOtherBuilders:
    @pytest.mark.parametrize("manager, expected", [
        (NPM, ["npm", "uninstall", "-g", "a"]),
        (YARN, ["yarn", "global", "remove", "a"]),
        (PNPM, ["pnpm", "remove", "-g", "a"]),
        (BUN, ["bun", "remove", "-g", "a"]),
    ])
    def test_uninstall_global(self, manager, expected):
        assert build_uninstall_args(manager, ["a"], global_=True) == expected

    def test_uninstall_local(self):
        assert build_uninstall_args(YARN, ["a", "b"]) == ["yarn", "remove", "a", "b"]

    @pytest.mark.parametrize("manager, expected", [
        (NPM, ["npm", "cache", "clean", "--force"]),
        (YARN, ["yarn", "cache", "clean"]),
        (PNPM, ["pnpm", "store", "prune"]),
        (BUN, ["bun", "pm", "cache", "rm"]),
    ])
    def test_cache_clean(self, manager, expected):
        assert build_cache_clean_args(manager) == expected


# ── Versions ────────────────────────────────────────────────────


class TestVersions:
    def test_manager_version(self):
        runner = MockRunner()
        runner.set_response("pnpm --version", CommandOutcome(stdout="9.1.0\n"))
        assert asyncio.run(manager_version(PNPM, runner)) == "9.1.0"

    def test_manager_version_failure(self):
        runner = MockRunner()
        runner.set_failure("bun")
        assert asyncio.run(manager_version(BUN, runner)) is None

    def test_installed_package_version(self, tmp_path):
        pkg = tmp_path / "node_modules" / "@scope" / "lib"
        pkg.mkdir(parents=True)
        (pkg / "package.json").write_text(json.dumps({"name": "@scope/lib", "version": "2.0.1"}))
        assert installed_package_version("@scope/lib", tmp_path) == "2.0.1"

    def test_installed_package_version_missing(self, tmp_path):
        assert installed_package_version("nope", tmp_path) is None

    def test_installed_package_version_malformed(self, tmp_path):
        pkg = tmp_path / "node_modules" / "bad"
        pkg.mkdir(parents=True)
        (pkg / "package.json").write_text("{")
        assert installed_package_version("bad", tmp_path) is None
