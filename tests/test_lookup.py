from unittest.mock import Mock

import lookup


def test_prints_results_and_exit_code(monkeypatch, capsys):
    fake = Mock(side_effect=lambda url: "Found it" if "good" in url else "")
    monkeypatch.setattr(lookup, "bound_fetchers", lambda cfg: {"title": fake})

    assert lookup.main(["title", "https://good.example", "https://bad.example"]) == 0
    out = capsys.readouterr().out
    assert "https://good.example\n  -> 'Found it'" in out
    assert "https://bad.example\n  -> ''" in out


def test_nothing_found_exits_2(monkeypatch):
    monkeypatch.setattr(lookup, "bound_fetchers", lambda cfg: {"social": Mock(return_value={})})
    assert lookup.main(["social", "https://none.example"]) == 2
