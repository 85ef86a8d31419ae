import logging
from types import SimpleNamespace

import pytest

from cursor2deb import environment as environment_mod
from cursor2deb import main as main_mod
from cursor2deb.utils import MetadataError


@pytest.fixture(autouse=True)
def isolated_cli(monkeypatch, tmp_path):
    log_path = tmp_path / "cursor-convert-test.log"
    monkeypatch.setattr(main_mod, "default_log_path", lambda: log_path)
    monkeypatch.setattr(main_mod.CleanupHandler, "register", lambda self: None)
    yield log_path
    package_logger = logging.getLogger("cursor2deb")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()


class RecordingConverter:
    instances = []

    def __init__(self, config, error=None):
        self.config = config
        self.error = error
        RecordingConverter.instances.append(self)

    def convert(self, cleanup=None):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(package_path=self.config.output_dir / "x.deb")


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main_mod.main(["--help"])
    assert excinfo.value.code == 0
    assert "--no-rsync" in capsys.readouterr().out


def test_unknown_flag_prints_help(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main_mod.main(["--bogus"])
    assert excinfo.value.code == 2
    err = capsys.readouterr().err
    assert "--keep-temp" in err
    assert "unrecognized arguments: --bogus" in err


def test_flags_reach_run_config(monkeypatch, tmp_path):
    RecordingConverter.instances = []
    monkeypatch.setattr(main_mod, "CursorDebConverter", RecordingConverter)

    code = main_mod.main(
        ["-k", "-v", "-o", str(tmp_path / "pkgs"), "--version", "0.42.0", "--no-rsync", "-j", "2"]
    )

    assert code == 0
    config = RecordingConverter.instances[-1].config
    assert config.keep_temp and config.verbose and not config.quiet
    assert config.output_dir == (tmp_path / "pkgs").resolve()
    assert config.version == "0.42.0"
    assert config.copy_strategy == "copy"
    assert config.jobs == 2


def test_config_file_applied_under_cli_flags(monkeypatch, tmp_path):
    RecordingConverter.instances = []
    monkeypatch.setattr(main_mod, "CursorDebConverter", RecordingConverter)
    cfg = tmp_path / "c.yaml"
    cfg.write_text("use_rsync: false\nversion: 1.0.0\nquiet: true\n")

    assert main_mod.main(["-c", str(cfg), "--version", "2.0.0"]) == 0

    config = RecordingConverter.instances[-1].config
    assert config.copy_strategy == "copy"
    assert config.version == "2.0.0"
    assert config.quiet is True
    assert config.config_file == cfg


def test_pipeline_failure_returns_one_and_points_at_log(monkeypatch, capsys, isolated_cli):
    monkeypatch.setattr(
        main_mod,
        "CursorDebConverter",
        lambda config: RecordingConverter(config, MetadataError("Failed to get download URL")),
    )

    assert main_mod.main([]) == 1

    err = capsys.readouterr().err
    assert "Failed to get download URL" in err
    assert f"Check log file for details: {isolated_cli}" in err
    assert "Failed to get download URL" in isolated_cli.read_text()


def test_quiet_hides_console_but_not_log_file(monkeypatch, capsys, isolated_cli):
    monkeypatch.setattr(
        main_mod,
        "CursorDebConverter",
        lambda config: RecordingConverter(config, MetadataError("boom")),
    )

    assert main_mod.main(["-q"]) == 1

    err = capsys.readouterr().err
    assert "[ERROR] boom" not in err
    assert "boom" in isolated_cli.read_text()


def test_interrupt_exit_code(monkeypatch):
    monkeypatch.setattr(
        main_mod, "CursorDebConverter", lambda config: RecordingConverter(config, KeyboardInterrupt())
    )
    assert main_mod.main([]) == 130


def test_invalid_config_file_is_usage_error(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("- not\n- a mapping\n")
    assert main_mod.main(["-c", str(cfg)]) == 1


def test_non_positive_jobs(tmp_path):
    assert main_mod.main(["-j", "0"]) == 1


def test_output_dir_under_a_file_is_reported(monkeypatch, capsys, tmp_path, isolated_cli):
    monkeypatch.setattr(environment_mod, "command_exists", lambda tool: True)
    monkeypatch.setattr(environment_mod.platform, "machine", lambda: "x86_64")
    blocker = tmp_path / "file"
    blocker.write_text("")

    assert main_mod.main(["--no-rsync", "-o", str(blocker / "out")]) == 1

    err = capsys.readouterr().err
    assert "[ERROR] Cannot use output directory" in err
    assert f"Check log file for details: {isolated_cli}" in err


def test_unexpected_os_error_returns_one(monkeypatch, capsys, isolated_cli):
    monkeypatch.setattr(
        main_mod,
        "CursorDebConverter",
        lambda config: RecordingConverter(config, PermissionError(13, "Permission denied", "/opt")),
    )

    assert main_mod.main([]) == 1

    err = capsys.readouterr().err
    assert "[ERROR] Unexpected system error" in err
    assert "Traceback" not in err
    assert f"Check log file for details: {isolated_cli}" in err
