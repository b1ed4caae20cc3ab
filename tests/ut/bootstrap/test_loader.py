import pytest

from mstart.bootstrap.config.loader import get_cli_args, get_configfile


@pytest.fixture(autouse=True)
def clear_caches():
    get_cli_args.cache_clear()
    get_configfile.cache_clear()
    yield
    get_cli_args.cache_clear()
    get_configfile.cache_clear()


@pytest.mark.ut
def test_cli_argument_wins(config_file, monkeypatch, tmp_path):
    other = tmp_path / "other.yaml"
    other.write_text("")
    monkeypatch.setattr("sys.argv", ["mstart", "--config", str(config_file)])
    monkeypatch.setenv("MSTARTCONFIG", str(other))

    assert get_configfile() == config_file


@pytest.mark.ut
def test_environment_variable(config_file, monkeypatch):
    monkeypatch.setattr("sys.argv", ["mstart"])
    monkeypatch.setenv("MSTARTCONFIG", str(config_file))

    assert get_configfile() == config_file


@pytest.mark.ut
def test_default_file_in_working_directory(tmp_path, monkeypatch):
    (tmp_path / "mstart.yaml").write_text("")
    monkeypatch.setattr("sys.argv", ["mstart"])
    monkeypatch.delenv("MSTARTCONFIG", raising=False)
    monkeypatch.chdir(tmp_path)

    assert get_configfile() == tmp_path / "mstart.yaml"


@pytest.mark.ut
def test_missing_file_exits(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.argv", ["mstart", "-c", str(tmp_path / "missing.yaml")])

    with pytest.raises(SystemExit) as exc:
        get_configfile()
    assert "Configuration file not found" in str(exc.value)


@pytest.mark.ut
def test_log_level(monkeypatch):
    monkeypatch.setattr("sys.argv", ["mstart", "-l", "DEBUG"])
    assert get_cli_args().log_level == "DEBUG"

    get_cli_args.cache_clear()
    monkeypatch.setattr("sys.argv", ["mstart"])
    assert get_cli_args().log_level == "INFO"


@pytest.mark.ut
def test_missing_file_names_where_it_was_looked_up(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.argv", ["mstart"])
    monkeypatch.setenv("MSTARTCONFIG", str(tmp_path / "gone.yaml"))

    with pytest.raises(SystemExit) as exc:
        get_configfile()
    assert "(from MSTARTCONFIG)" in str(exc.value)


@pytest.mark.ut
def test_help_documents_environment_overrides(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["mstart", "--help"])

    with pytest.raises(SystemExit):
        get_cli_args()

    out = capsys.readouterr().out
    assert "MSTART_SERVER__HOST" in out
    assert "/set-link-with-activity" in out
