import config
import host


class DummyResp:
    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self._data = data or {"result": True}
    def json(self):  # pragma: no cover - trivial
        return self._data


def test_rpc_disabled_without_url(monkeypatch):
    monkeypatch.setattr(config, "HOST_RPC_URL", "")
    def boom(*a, **k):  # pragma: no cover - must not be called
        raise AssertionError("post called")
    monkeypatch.setattr(host, "requests", type("R", (), {"post": staticmethod(boom)}))
    assert host._rpc("Test.Method") is None


def test_rpc_exception(monkeypatch):
    monkeypatch.setattr(config, "HOST_RPC_URL", "http://127.0.0.1:9/jsonrpc")
    calls = {"count": 0}
    def boom(*a, **k):
        calls["count"] += 1
        raise RuntimeError("fail")
    monkeypatch.setattr(host, "requests", type("R", (), {"post": staticmethod(boom)}))
    # Should swallow and return None
    assert host._rpc("Test.Method") is None
    assert calls["count"] == 1


def test_rpc_posts_jsonrpc_payload(monkeypatch):
    monkeypatch.setattr(config, "HOST_RPC_URL", "http://host/jsonrpc")
    sent = []
    def fake_post(url, headers=None, json=None, timeout=None):
        sent.append((url, json))
        return DummyResp()
    monkeypatch.setattr(host, "requests", type("R", (), {"post": staticmethod(fake_post)}))
    assert host._rpc("Events.StartDownloadUrl", {"url": "nxm://x"}) == {"result": True}
    url, payload = sent[0]
    assert url == "http://host/jsonrpc"
    assert payload["jsonrpc"] == "2.0" and payload["method"] == "Events.StartDownloadUrl"
    assert payload["params"] == {"url": "nxm://x"}


def test_helpers_call_rpc(monkeypatch):
    seen = []
    def fake_rpc(method, params=None):
        seen.append((method, params))
        return {"result": True}
    monkeypatch.setattr(host, "_rpc", fake_rpc)
    host.notify("Failed to activate NXM proxy", "exit code 1")
    host.start_download_url("nxm://GameDomain/mods/1/files/2")
    host.set_associated(False)
    host.set_proxy_enabled(False)
    methods = [m for m, _ in seen]
    assert methods == [
        "GUI.ShowNotification",
        "Events.StartDownloadUrl",
        "Settings.SetAssociateNXM",
        "Settings.SetProxyEnabled",
    ]
    assert seen[1][1] == {"url": "nxm://GameDomain/mods/1/files/2"}
    assert seen[2][1] == {"enabled": False}
