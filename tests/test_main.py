import pytest

from config import (
    DevelopmentSettings, ProductionSettings, Settings, TestingSettings, get_settings_for_environment
)
from main import build_parser, main


def write_input(tmp_path, text):
    path = tmp_path / "transactions.csv"
    path.write_text(text)
    return str(path)


class TestCommandLine:
    """Test the ledger-engine command."""

    def test_success(self, tmp_path, capsys):
        path = write_input(
            tmp_path,
            "type,      client, tx, amount\n"
            "deposit,        1,  1,     10\n"
            "deposit,        2,  2,     20\n"
            "withdrawal,     1,  3,      5\n"
            "dispute,        2,  2,       \n"
        )

        exit_code = main([path, "--env", "testing"])

        assert exit_code == 0
        assert capsys.readouterr().out.splitlines() == [
            "client,available,held,total,locked",
            "1,5.0000,0.0000,5.0000,false",
            "2,0.0000,20.0000,20.0000,false",
        ]

    def test_bad_rows_do_not_fail_the_run(self, tmp_path, capsys):
        path = write_input(
            tmp_path,
            "type,client,tx,amount\n"
            "deposit,1,1,abc\n"
            "teleport,1,2,5\n"
            "deposit,1,3,2.5\n"
        )

        exit_code = main([path, "--env", "testing"])

        captured = capsys.readouterr()
        assert exit_code == 0
        assert captured.out.splitlines()[1] == "1,2.5000,0.0000,2.5000,false"
        assert "malformed_record" in captured.err

    def test_stdout_only_carries_the_report(self, tmp_path, capsys):
        path = write_input(tmp_path, "type,client,tx,amount\nwithdrawal,1,1,5\n")

        main([path, "--env", "development"])

        captured = capsys.readouterr()
        assert captured.out.splitlines() == [
            "client,available,held,total,locked",
            "1,0.0000,0.0000,0.0000,false",
        ]
        assert "insufficient_funds" in captured.err

    def test_failure_when_no_file(self, tmp_path, capsys):
        exit_code = main([str(tmp_path / "does_not_exist.csv"), "--env", "testing"])

        captured = capsys.readouterr()
        assert exit_code == 1
        assert "Error: No such file or directory" in captured.err
        assert captured.out == ""

    def test_bad_header_skips_every_row(self, tmp_path, capsys):
        path = write_input(tmp_path, "kind,client,amount\ndeposit,1,10\n")

        exit_code = main([path, "--env", "testing"])

        captured = capsys.readouterr()
        assert exit_code == 0
        assert "malformed_record" in captured.err
        assert captured.out == ""

    def test_failure_when_no_args(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2
        assert "usage: ledger-engine" in capsys.readouterr().err

    def test_failure_when_too_many_args(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["a.csv", "b.csv"])

        assert exc_info.value.code == 2

    def test_parser(self):
        args = build_parser().parse_args(["some.csv"])

        assert args.filename == "some.csv"
        assert args.env is None


class TestSettings:
    """Test environment presets."""

    @pytest.mark.parametrize("env, expected", [
        ("development", DevelopmentSettings),
        ("production", ProductionSettings),
        ("testing", TestingSettings),
        ("TESTING", TestingSettings),
        ("staging", Settings),
    ])
    def test_settings_for_environment(self, env, expected):
        assert type(get_settings_for_environment(env)) is expected

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("FREEZE_LOCKED_ACCOUNTS", raising=False)
        monkeypatch.delenv("LOG_FORMAT", raising=False)

        settings = Settings(_env_file=None)

        assert settings.freeze_locked_accounts is True
        assert settings.csv_trim_whitespace is True
        assert settings.log_format == "json"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("FREEZE_LOCKED_ACCOUNTS", "false")

        assert Settings(_env_file=None).freeze_locked_accounts is False
