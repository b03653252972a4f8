"""
Tests for host, disk, and network probes.
"""

import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from polyinstall.core.models import ArchKind, HostFacts, OSKind
from polyinstall.core.services.detection import disk, host, network

# ── Host ────────────────────────────────────────────────────────


class TestHostDetection:
    @pytest.mark.parametrize("system, expected", [
        ("Linux", OSKind.LINUX),
        ("Darwin", OSKind.MACOS),
        ("Windows", OSKind.WINDOWS),
        ("Plan9", OSKind.UNKNOWN),
    ])
    def test_detect_os(self, monkeypatch, system, expected):
        monkeypatch.setattr(host.platform, "system", lambda: system)
        assert host.detect_os() == expected

    @pytest.mark.parametrize("machine, expected", [
        ("x86_64", ArchKind.X64),
        ("AMD64", ArchKind.X64),
        ("aarch64", ArchKind.ARM64),
        ("arm64", ArchKind.ARM64),
        ("armv7l", ArchKind.ARM),
        ("i686", ArchKind.X86),
        ("riscv64", ArchKind.UNKNOWN),
    ])
    def test_detect_arch(self, monkeypatch, machine, expected):
        monkeypatch.setattr(host.platform, "machine", lambda: machine)
        assert host.detect_arch() == expected

    def test_container_dockerenv(self, tmp_path):
        (tmp_path / ".dockerenv").write_text("")
        assert host.detect_container(tmp_path)

    def test_container_cgroup(self, tmp_path):
        (tmp_path / "proc" / "1").mkdir(parents=True)
        (tmp_path / "proc" / "1" / "cgroup").write_text("0::/kubepods/besteffort/pod1\n")
        assert host.detect_container(tmp_path)

    def test_not_container(self, tmp_path):
        assert not host.detect_container(tmp_path)

    def test_detect_ci(self):
        assert host.detect_ci({"GITHUB_ACTIONS": "true"})
        assert not host.detect_ci({"HOME": "/root"})
        assert not host.detect_ci({"CI": ""})

    def test_describe_host(self):
        facts = host.describe_host()
        assert isinstance(facts, HostFacts)


# ── Disk ────────────────────────────────────────────────────────


class TestDiskStatus:
    def test_real_directory(self, tmp_path):
        status = disk.disk_status(tmp_path)
        assert status.total_bytes > 0
        assert not status.estimated

    def test_missing_directory_uses_ancestor(self, tmp_path):
        status = disk.disk_status(tmp_path / "not" / "yet")
        assert not status.estimated

    def test_probe_failure_falls_back(self, monkeypatch, tmp_path):
        def boom(path):
            raise OSError("nope")

        monkeypatch.setattr(disk.shutil, "disk_usage", boom)
        status = disk.disk_status(tmp_path)
        assert status == disk.FALLBACK_STATUS
        assert status.free_gb == 10


# ── Network ─────────────────────────────────────────────────────


def _response(code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.getcode.return_value = code
    resp.__enter__.return_value = resp
    return resp


class TestRegistryReachable:
    @patch("polyinstall.core.services.detection.network.urllib.request.urlopen")
    def test_reachable(self, mock_open):
        mock_open.return_value = _response(200)
        result = network.check_registry_reachable("https://registry.npmjs.org/")
        assert result["reachable"]
        assert result["status"] == 200
        request = mock_open.call_args[0][0]
        assert request.get_method() == "HEAD"

    @patch("polyinstall.core.services.detection.network.urllib.request.urlopen")
    def test_http_error_still_reachable(self, mock_open):
        mock_open.side_effect = urllib.error.HTTPError("u", 405, "Method Not Allowed", {}, None)
        result = network.check_registry_reachable("https://example.com")
        assert result["reachable"]
        assert result["status"] == 405

    @patch("polyinstall.core.services.detection.network.urllib.request.urlopen")
    def test_unreachable(self, mock_open):
        mock_open.side_effect = urllib.error.URLError("timed out")
        result = network.check_registry_reachable("https://example.com")
        assert not result["reachable"]
        assert "timed out" in result["error"]


class TestNetworkStatus:
    def test_online_and_registry(self, monkeypatch):
        monkeypatch.setattr(network, "check_internet_connectivity", lambda timeout=5: True)
        monkeypatch.setattr(
            network, "check_registry_reachable",
            lambda url, timeout=5: {"reachable": True, "url": url},
        )
        status = network.network_status("https://r.example")
        assert status.is_online
        assert status.registry_reachable
        assert status.registry == "https://r.example"

    def test_offline_skips_registry(self, monkeypatch):
        probed = []
        monkeypatch.setattr(network, "check_internet_connectivity", lambda timeout=5: False)
        monkeypatch.setattr(
            network, "check_registry_reachable",
            lambda url, timeout=5: probed.append(url) or {"reachable": True},
        )
        status = network.network_status()
        assert not status.is_online
        assert not status.registry_reachable
        assert probed == []

    def test_connectivity_tries_endpoints_in_order(self, monkeypatch):
        tried = []

        def probe(url, timeout=5):
            tried.append(url)
            return {"reachable": len(tried) == 2}

        monkeypatch.setattr(network, "check_registry_reachable", probe)
        assert network.check_internet_connectivity()
        assert len(tried) == 2


class TestProxy:
    def test_no_proxy(self, monkeypatch):
        for var in ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "no_proxy", "NO_PROXY"):
            monkeypatch.delenv(var, raising=False)
        assert network.detect_proxy() == {"has_proxy": False}

    def test_https_proxy(self, monkeypatch):
        for var in ("http_proxy", "HTTP_PROXY", "https_proxy", "no_proxy", "NO_PROXY"):
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setenv("HTTPS_PROXY", "http://proxy:3128")
        result = network.detect_proxy()
        assert result["has_proxy"]
        assert result["https_proxy"] == "http://proxy:3128"


def test_fallback_constants_are_conservative():
    assert disk.FALLBACK_STATUS.free_bytes == 10 * 1024 ** 3
    assert disk.FALLBACK_STATUS.total_bytes == 100 * 1024 ** 3
