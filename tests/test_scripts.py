import uvicorn

from scripts import run_api


def test_run_api_passes_options_to_uvicorn(monkeypatch):
    calls: list[tuple[str, dict]] = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    run_api.main(["--port", "9000", "--reload"])

    assert calls == [
        ("econ_calendar.main:app", {"host": "0.0.0.0", "port": 9000, "reload": True, "log_level": "info"})
    ]
