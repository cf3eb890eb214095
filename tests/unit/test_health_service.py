from types import SimpleNamespace

from photocommerce.health import service as health_service


def test_health_reports_table_errors(monkeypatch):
    class _Query:
        def __init__(self, name):
            self.name = name

        def select(self, *_):
            return self

        def limit(self, _):
            return self

        def execute(self):
            if self.name == "notifications":
                raise ConnectionError("boom")
            return SimpleNamespace(data=[])

    fake = SimpleNamespace(table=_Query)
    monkeypatch.setattr(health_service, "SUPABASE_URL", "")
    monkeypatch.setattr(health_service, "get_service_supabase", lambda: fake)
    info = health_service.health_supabase_info()
    assert info["connect_ok"] is False
    assert info["tables"]["orders"] == {"ok": True, "rows": 0}
    assert info["tables"]["notifications"] == {"ok": False, "error": "ConnectionError"}


def test_health_without_service_key(monkeypatch):
    def _missing():
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant")

    monkeypatch.setattr(health_service, "get_service_supabase", _missing)
    info = health_service.health_supabase_info()
    assert info["connect_ok"] is False
    assert info["error"] == "RuntimeError"
