"""Tests for the gpg gateway (subprocess mocked) and the editor wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from passmanager.editor import Editor
from passmanager.errors import EditorError, GpgError, PreconditionError
from passmanager.gpg import BASE_OPTIONS, GpgGateway, find_gpg
from passmanager.models import RecipientSet, StoreConfig


def _done(stdout=b"", returncode=0, stderr=b""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class TestFindGpg:
    def test_prefers_gpg2(self):
        with patch("passmanager.gpg.shutil.which", side_effect=lambda n: f"/usr/bin/{n}"):
            assert find_gpg() == "/usr/bin/gpg2"

    def test_falls_back_to_gpg(self):
        with patch("passmanager.gpg.shutil.which",
                   side_effect=lambda n: "/usr/bin/gpg" if n == "gpg" else None):
            assert find_gpg() == "/usr/bin/gpg"

    def test_not_found(self):
        with patch("passmanager.gpg.shutil.which", return_value=None):
            with pytest.raises(PreconditionError, match="gpg or gpg2 not found"):
                find_gpg()


class TestOptions:
    def test_gpg2_uses_agent(self, monkeypatch):
        monkeypatch.delenv("GPG_AGENT_INFO", raising=False)
        gw = GpgGateway("/usr/bin/gpg2")
        assert gw.options[:4] == list(BASE_OPTIONS)
        assert gw.options[-2:] == ["--batch", "--use-agent"]

    def test_gpg_without_agent(self, monkeypatch):
        monkeypatch.delenv("GPG_AGENT_INFO", raising=False)
        assert "--batch" not in GpgGateway("/usr/bin/gpg").options

    def test_agent_info_enables_batch(self, monkeypatch):
        monkeypatch.setenv("GPG_AGENT_INFO", "/run/agent:1:1")
        assert "--use-agent" in GpgGateway("/usr/bin/gpg").options

    def test_user_options_first(self):
        gw = GpgGateway("gpg", extra_options=["--homedir", "/k"])
        assert gw.options[:2] == ["--homedir", "/k"]

    def test_from_config(self):
        config = StoreConfig(gpg_binary="gpg", gpg_options=("--homedir", "/k"), gpg_timeout=3)
        with patch("passmanager.gpg.shutil.which", return_value="/opt/gpg"):
            gw = GpgGateway.from_config(config)
        assert gw.binary == "/opt/gpg"
        assert gw.timeout == 3


class TestEncryptDecrypt:
    def test_encrypt_hidden_recipients_over_pipe(self):
        gw = GpgGateway("gpg")
        with patch("passmanager.gpg.subprocess.run", return_value=_done(b"CIPHER")) as run:
            out = gw.encrypt(b"secret", RecipientSet.of("b@x.org", "a@x.org"))
        assert out == b"CIPHER"
        cmd = run.call_args.args[0]
        assert cmd[:2] == ["gpg", "-e"]
        assert cmd[-4:] == ["-R", "a@x.org", "-R", "b@x.org"]
        assert "-o" not in cmd
        assert run.call_args.kwargs["input"] == b"secret"

    def test_decrypt(self):
        gw = GpgGateway("gpg")
        with patch("passmanager.gpg.subprocess.run", return_value=_done(b"plain")) as run:
            assert gw.decrypt(b"CIPHER") == b"plain"
        assert run.call_args.args[0][:2] == ["gpg", "-d"]
        assert run.call_args.kwargs["input"] == b"CIPHER"

    def test_failure_carries_stderr(self):
        gw = GpgGateway("gpg")
        with patch("passmanager.gpg.subprocess.run",
                   return_value=_done(returncode=2, stderr=b"gpg: decryption failed: No secret key")):
            with pytest.raises(GpgError, match="No secret key"):
                gw.decrypt(b"CIPHER")

    def test_missing_binary(self):
        with patch("passmanager.gpg.subprocess.run", side_effect=FileNotFoundError("gpg")):
            with pytest.raises(GpgError):
                GpgGateway("gpg").decrypt(b"x")

    def test_decrypt_file_missing(self, tmp_path: Path):
        with pytest.raises(GpgError):
            GpgGateway("gpg").decrypt_file(tmp_path / "none.gpg")

    def test_textconv(self):
        gw = GpgGateway("gpg", extra_options=["--homedir", "/k"])
        assert gw.textconv_command().startswith("gpg -d --homedir /k --quiet")


class TestEditor:
    def test_runs_command_with_path(self, tmp_path: Path):
        with patch("passmanager.editor.subprocess.run", return_value=_done()) as run:
            Editor(["vim", "-c", "set nobackup"])(tmp_path / "f")
        assert run.call_args.args[0] == ["vim", "-c", "set nobackup", str(tmp_path / "f")]

    def test_nonzero_exit(self, tmp_path: Path):
        with patch("passmanager.editor.subprocess.run", return_value=_done(returncode=1)):
            with pytest.raises(EditorError, match="returned an error"):
                Editor(["vi"])(tmp_path / "f")

    def test_missing_editor(self, tmp_path: Path):
        with patch("passmanager.editor.subprocess.run", side_effect=FileNotFoundError("vi")):
            with pytest.raises(EditorError):
                Editor(["vi"])(tmp_path / "f")
