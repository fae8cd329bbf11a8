def test_health_reports_store_widget_and_rate_limit(client):
    r = client.get("/api/v1/health")

    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["store"] is True
    assert body["payment_widget"] is True
    assert body["rate_limit"]["enabled"] is False


def test_security_headers_are_set(client):
    r = client.get("/api/v1/health")
    assert r.headers["X-Frame-Options"] == "DENY"
    assert "https://js.stripe.com" in r.headers["Content-Security-Policy"]


def test_unauthenticated_api_call_is_401(app, client):
    from catering.utils.security import require_user

    app.dependency_overrides.pop(require_user, None)
    r = client.get("/api/v1/cart")
    assert r.status_code == 401
    assert r.json() == {"detail": "Non authentifié"}


def test_http_errors_are_json_even_for_browser_requests():
    from fastapi import HTTPException
    from fastapi.testclient import TestClient

    from catering.app_setup.factory import create_app

    app = create_app()

    @app.get("/espace-parent")
    def espace_parent():
        raise HTTPException(status_code=403, detail="Accès interdit")

    r = TestClient(app).get("/espace-parent", headers={"accept": "text/html"}, follow_redirects=False)

    assert r.status_code == 403
    assert r.json() == {"detail": "Accès interdit"}
    assert "location" not in r.headers
