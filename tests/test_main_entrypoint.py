import cac.main as main_module


def test_main_returns_cli_exit_code(monkeypatch):
    monkeypatch.setattr(main_module, "cli_main", lambda: 3)
    assert main_module.main() == 3
