import hvac.exceptions
import pytest
from falcon import testing

from gcpvault.util.server import create_app


@pytest.fixture
def client(service):
    return testing.TestClient(create_app(service))


class ExplodingService:
    def list_rolesets(self, timeout):
        raise RuntimeError("secret internal state")


def test_roleset_lifecycle(client, vault):
    response = client.simulate_post('/api/v1/rolesets/r1', json={"project": "p", "secret_type": "access_token"})
    assert 201 == response.status_code, f"Expected 201 but got {response.status_code}: {response.text}"
    assert response.json == {"message": "Roleset created successfully", "data": {"name": "r1"}}

    response = client.simulate_get('/api/v1/rolesets')
    assert 200 == response.status_code
    assert "r1" in response.json["data"]["rolesets"]
    assert response.json["data"]["count"] == 1

    response = client.simulate_post('/api/v1/tokens/r1', json={})
    assert 200 == response.status_code
    assert response.json["data"]["token"]
    assert set(response.json["data"]) == {"token", "token_ttl", "expires_at_seconds"}

    response = client.simulate_delete('/api/v1/rolesets/r1')
    assert 200 == response.status_code
    assert response.json["data"] == {"name": "r1"}

    response = client.simulate_get('/api/v1/rolesets')
    assert 200 == response.status_code
    assert response.json["data"] == {"rolesets": [], "count": 0}


def test_create_roleset_without_name(client, vault):
    response = client.simulate_post('/api/v1/rolesets/', json={"project": "p", "secret_type": "access_token"})
    assert 400 == response.status_code
    assert response.json["error"] == "Roleset name is required"
    assert vault.requests == []


def test_create_roleset_with_unknown_secret_type(client, vault):
    response = client.simulate_post('/api/v1/rolesets/r2', json={"secret_type": "bogus"})
    assert 400 == response.status_code
    assert "secret_type" in response.json["error"]
    assert vault.requests == []


def test_create_roleset_with_invalid_json(client, vault):
    response = client.simulate_post('/api/v1/rolesets/r1', body='{"project": ',
                                    headers={"Content-Type": "application/json"})
    assert 400 == response.status_code
    assert vault.requests == []


def test_create_roleset_with_missing_body(client, vault):
    response = client.simulate_post('/api/v1/rolesets/r1')
    assert 400 == response.status_code
    assert response.json["error"] == "Missing body"


def test_create_roleset_with_bindings_object(client, vault):
    body = {
        "project": "p",
        "secret_type": "service_account_key",
        "bindings": {"//cloudresourcemanager.googleapis.com/projects/p": ["roles/viewer"]},
    }
    response = client.simulate_post('/api/v1/rolesets/k1', json=body)
    assert 201 == response.status_code
    assert "roles/viewer" in vault.rolesets["k1"]["bindings"]


def test_create_roleset_rejects_bindings_string(client, vault):
    body = {"project": "p", "secret_type": "access_token", "bindings": '{"resource": {}}'}
    response = client.simulate_post('/api/v1/rolesets/r1', json=body)
    assert 400 == response.status_code
    assert vault.requests == []


def test_create_roleset_upstream_failure(client, vault):
    vault.responses[("post", "gcp/roleset/r1")] = hvac.exceptions.InvalidRequest("invalid ttl")
    response = client.simulate_post('/api/v1/rolesets/r1', json={"project": "p", "secret_type": "access_token"})
    assert 500 == response.status_code
    assert response.json["error"] == "Failed to create roleset"
    assert "invalid ttl" in response.json["details"]


def test_delete_roleset_without_name(client, vault):
    response = client.simulate_delete('/api/v1/rolesets/')
    assert 400 == response.status_code
    assert vault.requests == []


def test_list_rolesets_upstream_failure(client, vault):
    vault.responses[("get", "gcp/roleset")] = hvac.exceptions.Forbidden("permission denied")
    response = client.simulate_get('/api/v1/rolesets')
    assert 500 == response.status_code
    assert "permission denied" in response.json["details"]


def test_token_with_ttl(client, vault):
    vault.rolesets = {"r1": {"secret_type": "access_token"}}
    response = client.simulate_post('/api/v1/tokens/r1', json={"ttl": "600s"})
    assert 200 == response.status_code
    assert response.json["data"]["token_ttl"] == "600s"
    assert vault.requests[-1][0] == "post"


def test_token_tolerates_unreadable_body(client, vault):
    vault.rolesets = {"r1": {"secret_type": "access_token"}}
    response = client.simulate_post('/api/v1/tokens/r1', body='not json')
    assert 200 == response.status_code
    assert vault.requests[-1][:2] == ("get", "/v1/gcp/token/r1")


def test_token_for_missing_roleset(client, vault):
    response = client.simulate_post('/api/v1/tokens/missing')
    assert 500 == response.status_code
    assert response.json["error"] == "Failed to generate access token"


def test_token_without_name(client, vault):
    response = client.simulate_post('/api/v1/tokens/')
    assert 400 == response.status_code
    assert vault.requests == []


def test_service_account_key(client, vault):
    vault.rolesets = {"k1": {"secret_type": "service_account_key"}}
    response = client.simulate_post('/api/v1/keys/k1')
    assert 200 == response.status_code
    assert set(response.json["data"]) == {"private_key_data", "key_algorithm", "key_type", "key_id"}


def test_service_account_key_without_data(client, vault):
    vault.responses[("get", "gcp/key/k1")] = hvac.exceptions.InvalidPath()
    response = client.simulate_post('/api/v1/keys/k1')
    assert 500 == response.status_code
    assert response.json["details"] == "no key data returned"


def test_health_ok(client):
    response = client.simulate_get('/health')
    assert 200 == response.status_code
    assert response.json == {"message": "Service is healthy"}


def test_health_sealed(client, vault):
    vault.health = {"initialized": True, "sealed": True}
    response = client.simulate_get('/health')
    assert 503 == response.status_code
    assert response.json["error"] == "Service unavailable"
    assert "sealed=True" in response.json["details"]


def test_unexpected_error_becomes_generic_500(capsys):
    client = testing.TestClient(create_app(ExplodingService()))
    response = client.simulate_get('/api/v1/rolesets')
    assert 500 == response.status_code
    assert response.json == {"error": "Internal server error"}
    assert "Unhandled exception while processing request" in capsys.readouterr().err


def test_create_roleset_ignores_unknown_fields(client, vault):
    body = {"project": "p", "secret_type": "access_token", "extra": 1}
    response = client.simulate_post('/api/v1/rolesets/r1', json=body)
    assert 201 == response.status_code, f"Expected 201 but got {response.status_code}: {response.text}"
    assert "extra" not in vault.rolesets["r1"]


def test_request_is_logged(client, capsys):
    capsys.readouterr()
    client.simulate_get('/api/v1/rolesets', query_string='limit=5',
                        headers={'User-Agent': 'roleset-tests/1.0'})
    lines = [line for line in capsys.readouterr().err.splitlines() if "Request completed" in line]

    assert len(lines) == 1
    line = lines[0]
    assert line.startswith("[gcp-vault-api] [INFO] Request completed")
    for field in ("status=200", "method=GET", "path=/api/v1/rolesets", "query=limit=5",
                  "ip=127.0.0.1", 'user_agent="roleset-tests/1.0"', "duration="):
        assert field in line, f"{field} missing from {line}"


def test_unknown_route_uses_error_envelope(client):
    response = client.simulate_get('/api/v1/nothing-here')
    assert 404 == response.status_code
    assert response.json["error"] == "404 Not Found"
    assert "title" not in response.json


def test_wrong_method_uses_error_envelope(client):
    response = client.simulate_put('/health')
    assert 405 == response.status_code
    assert set(response.json) <= {"error", "details"}
    assert response.json["error"]
