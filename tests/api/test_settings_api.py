"""Integration tests for settings, Google OAuth and the health endpoints."""

from voice_calendar.core.exceptions import CalendarAPIError, ConfigError
from voice_calendar.database.models import GoogleCredentials


def test_app_settings_defaults_and_merge(client):
    defaults = client.get("/api/v1/settings").json()
    assert defaults["theme"] == "system"
    assert defaults["notificationsEnabled"] is True

    merged = client.put("/api/v1/settings", json={"theme": "dark", "notificationsEnabled": False}).json()

    assert merged["theme"] == "dark"
    assert merged["notificationsEnabled"] is False
    assert merged["viewMode"] == "simple"
    assert client.get("/api/v1/settings").json() == merged


def test_voice_agent_credentials_round_trip(client, store):
    assert client.get("/api/v1/settings/voice-agent").json() is None

    saved = client.put("/api/v1/settings/voice-agent", json={"endpointUrl": "https://hook.example.com", "authToken": "t0k"})

    assert saved.status_code == 200
    assert store.get_voice_agent_credentials().endpoint_url == "https://hook.example.com"
    assert client.get("/api/v1/settings/voice-agent").json() == {"endpointUrl": "https://hook.example.com", "authToken": "t0k"}


def test_save_google_credentials_fills_defaults(client, calendar):
    response = client.put("/api/v1/settings/google", json={"clientId": "id", "clientSecret": "secret"})

    assert response.status_code == 200
    body = response.json()
    assert body["calendarId"] == "primary"
    assert body["redirectUri"].endswith("/auth")
    saved = calendar.set_credentials.call_args.args[0]
    assert isinstance(saved, GoogleCredentials)
    assert saved.client_id == "id"


def test_delete_google_credentials(client, store):
    store.set_google_credentials(GoogleCredentials(client_id="id", client_secret="secret"))
    store.set_access_token("access")

    assert client.delete("/api/v1/settings/google").status_code == 204
    assert store.get_google_credentials() is None
    assert store.get_access_token() is None


def test_google_test_requires_credentials(client):
    response = client.post("/api/v1/settings/google/test")

    assert response.status_code == 400
    assert response.json()["detail"] == "Salve as credenciais primeiro"


def test_google_test_returns_auth_url_before_authorization(client, calendar):
    calendar.has_valid_credentials.return_value = True
    calendar.is_authenticated.return_value = False
    calendar.get_auth_url.return_value = "https://accounts.google.com/o/oauth2/auth?x=1"

    body = client.post("/api/v1/settings/google/test").json()

    assert body == {"configured": True, "connected": False, "authUrl": "https://accounts.google.com/o/oauth2/auth?x=1"}


def test_google_test_checks_connection_when_authorized(client, calendar):
    calendar.has_valid_credentials.return_value = True
    calendar.is_authenticated.return_value = True
    calendar.test_connection.return_value = True

    body = client.post("/api/v1/settings/google/test").json()

    assert body["connected"] is True
    assert body["authUrl"] is None


# --- OAuth ---

def test_login_redirects_to_google(client, calendar):
    calendar.get_auth_url.return_value = "https://accounts.google.com/o/oauth2/auth?x=1"

    response = client.get("/auth/google/login", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "https://accounts.google.com/o/oauth2/auth?x=1"


def test_login_without_credentials_is_400(client, calendar):
    calendar.get_auth_url.side_effect = ConfigError("No Google credentials configured")

    response = client.get("/auth/google/login", follow_redirects=False)

    assert response.status_code == 400


def test_callback_exchanges_code(client, calendar):
    response = client.get("/auth", params={"code": "abc"})

    assert response.status_code == 200
    assert "Conectado ao Google Calendar com sucesso!" in response.text
    calendar.exchange_code_for_token.assert_called_once_with("abc")


def test_callback_reports_google_error(client, calendar):
    response = client.get("/auth", params={"error": "access_denied"})

    assert response.status_code == 400
    assert "Falha na autorização: access_denied" in response.text
    calendar.exchange_code_for_token.assert_not_called()


def test_callback_without_code(client):
    response = client.get("/auth")

    assert response.status_code == 400
    assert "Nenhum código de autorização recebido" in response.text


def test_callback_exchange_failure(client, calendar):
    calendar.exchange_code_for_token.side_effect = CalendarAPIError("invalid_grant")

    response = client.get("/auth", params={"code": "stale"})

    assert response.status_code == 400
    assert "Falha ao completar a autenticação. Tente novamente." in response.text


# --- Health ---

def test_health_and_root(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"

    root = client.get("/").json()
    assert root["message"] == "Welcome to Voice Calendar API"
