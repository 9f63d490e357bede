import subprocess

import pytest

from floodguard import firewall
from floodguard.firewall import FirewallError


def test_dry_run_runs_nothing(monkeypatch, log_records) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("subprocess must not run in dry-run")

    monkeypatch.setattr(firewall.subprocess, "run", fail)
    firewall.block_ip("1.2.3.4", dry_run=True)

    record = log_records()[-1]
    assert record["action"] == "block_simulated"
    assert "--dports 80,443" in record["command"]


def test_iptables_rule_targets_web_ports() -> None:
    assert firewall.iptables_command("1.2.3.4") == [
        "iptables", "-I", "INPUT", "1", "-s", "1.2.3.4",
        "-p", "tcp", "-m", "multiport", "--dports", "80,443", "-j", "DROP",
    ]
    assert firewall.ufw_command("1.2.3.4")[-1] == "80,443"


def test_block_runs_iptables(monkeypatch, log_records) -> None:
    calls = []
    monkeypatch.setattr(firewall, "_is_linux", lambda: True)
    monkeypatch.setattr(firewall.shutil, "which", lambda name: "/usr/sbin/" + name)
    monkeypatch.setattr(firewall.subprocess, "run", lambda cmd, **kw: calls.append(cmd))

    firewall.block_ip("1.2.3.4", dry_run=False)
    assert calls == [firewall.iptables_command("1.2.3.4")]
    assert log_records()[-1]["action"] == "block_applied"


def test_falls_back_to_ufw(monkeypatch) -> None:
    monkeypatch.setattr(firewall, "_is_linux", lambda: True)
    monkeypatch.setattr(firewall.shutil, "which", lambda name: "/usr/sbin/ufw" if name == "ufw" else None)
    assert firewall.choose_command("1.2.3.4")[0] == "ufw"


def test_failed_command_raises(monkeypatch, log_records) -> None:
    def boom(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd)

    monkeypatch.setattr(firewall, "_is_linux", lambda: True)
    monkeypatch.setattr(firewall.shutil, "which", lambda name: "/usr/sbin/" + name)
    monkeypatch.setattr(firewall.subprocess, "run", boom)

    with pytest.raises(FirewallError) as excinfo:
        firewall.block_ip("1.2.3.4", dry_run=False)
    assert excinfo.value.ip == "1.2.3.4"
    assert log_records()[-1]["level"] == "ERROR"


def test_no_tool_raises(monkeypatch) -> None:
    monkeypatch.setattr(firewall, "_is_linux", lambda: True)
    monkeypatch.setattr(firewall.shutil, "which", lambda name: None)
    with pytest.raises(FirewallError):
        firewall.block_ip("1.2.3.4", dry_run=False)
