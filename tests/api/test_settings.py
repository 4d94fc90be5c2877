from marketplace.core.config import APISettings


class TestServerSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("HOST", raising=False)
        monkeypatch.delenv("PORT", raising=False)

        api_settings = APISettings()

        assert (api_settings.HOST, api_settings.PORT) == ("0.0.0.0", 8000)

    def test_bind_address_from_environment(self, monkeypatch):
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "9090")

        api_settings = APISettings()

        assert (api_settings.HOST, api_settings.PORT) == ("127.0.0.1", 9090)
