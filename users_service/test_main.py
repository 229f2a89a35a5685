"""
Unit tests for Users Service.
Tests the HTTP routes, validation errors, error mapping and observability endpoints.
"""
import uuid

import pytest
from fastapi.testclient import TestClient

from users_service.main import app, format_response_time
from users_service.models import SEED_USERS, users_store

EMMA_ID = "4b1335f4-788b-4e8d-9ed5-04b99ce430a4"
UNKNOWN_ID = "123e4567-e89b-12d3-a456-426614174000"


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_users_store():
    """Reset the users store before and after each test."""
    users_store.reset(SEED_USERS)
    yield
    users_store.reset(SEED_USERS)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client):
        """Test that health endpoint returns healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "users-service"}


class TestMetricsEndpoint:
    """Tests for the Prometheus metrics endpoint."""

    def test_metrics_endpoint(self, client):
        """Test that metrics endpoint returns Prometheus format."""
        client.get("/users")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert b"http_requests_total" in response.content

    def test_validation_errors_are_counted(self, client):
        """Test that rejected payloads show up in the error counter."""
        client.post("/user", json={})
        response = client.get("/metrics")
        assert b'error_type="validation_error"' in response.content


class TestGetUsers:
    """Tests for GET /users endpoint."""

    def test_get_all_users(self, client):
        """Test fetching all users returns the seed list in order."""
        response = client.get("/users")
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 10
        assert data[0]["firstName"] == "Emma"
        assert data[-1]["firstName"] == "William"

    def test_users_are_serialized_with_camel_case(self, client):
        """Test that every record carries the seven wire fields."""
        data = client.get("/users").json()
        assert set(data[0]) == {"id", "firstName", "lastName", "email", "phone", "createdAt", "updatedAt"}


class TestCreateUser:
    """Tests for POST /user endpoint."""

    def test_create_user_success(self, client):
        """Test creating a new user with valid data."""
        new_user = {"firstName": "Alice", "lastName": "Johnson", "email": "alice@example.com", "phone": "555-555-0100"}
        response = client.post("/user", json=new_user)
        assert response.status_code == 201
        data = response.json()
        assert data["firstName"] == "Alice"
        assert data["email"] == "alice@example.com"
        assert str(uuid.UUID(data["id"])) == data["id"]
        assert data["createdAt"] == data["updatedAt"]
        assert data["createdAt"].endswith("Z")

    def test_create_user_with_names_only(self, client):
        """Test that email and phone are optional on create."""
        response = client.post("/user", json={"firstName": "Alice", "lastName": "Johnson"})
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == ""
        assert data["phone"] == ""
        assert set(data) == {"id", "firstName", "lastName", "email", "phone", "createdAt", "updatedAt"}
        assert len(users_store) == 11

    def test_created_user_is_readable_and_listed_last(self, client):
        """Test that a created user can be fetched and is appended."""
        created = client.post("/user", json={"firstName": "Alice", "lastName": "Johnson"}).json()
        assert client.get(f"/user/{created['id']}").json() == created
        assert client.get("/users").json()[-1] == created

    def test_create_strips_unknown_fields(self, client):
        """Test that unknown fields never reach the stored user."""
        response = client.post("/user", json={"firstName": "Alice", "lastName": "Johnson", "role": "admin"})
        assert response.status_code == 201
        assert "role" not in response.json()

    def test_create_user_invalid_email_and_phone(self, client):
        """Test that both invalid fields are reported."""
        response = client.post("/user", json={
            "firstName": "Alice",
            "lastName": "Johnson",
            "email": "bad",
            "phone": "bad",
        })
        assert response.status_code == 400
        assert response.json() == {
            "status": "error",
            "message": "Validation error",
            "details": [
                {"fieldPath": "email", "message": "Invalid email address"},
                {"fieldPath": "phone", "message": "Invalid phone number"},
            ],
        }
        assert len(users_store) == 10

    def test_create_user_missing_names(self, client):
        """Test that an empty body reports both required names."""
        response = client.post("/user")
        assert response.status_code == 400
        paths = [d["fieldPath"] for d in response.json()["details"]]
        assert paths == ["firstName", "lastName"]

    def test_create_user_malformed_json(self, client):
        """Test that a body that is not JSON is rejected."""
        response = client.post("/user", content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Malformed JSON body"


class TestGetUserById:
    """Tests for GET /user/{id} endpoint."""

    def test_get_user_by_id_success(self, client):
        """Test fetching a user by valid ID."""
        response = client.get(f"/user/{EMMA_ID}")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == EMMA_ID
        assert data["lastName"] == "Johnson"

    def test_get_user_invalid_id(self, client):
        """Test that a non-UUID id is a validation error."""
        response = client.get("/user/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["details"] == [{"fieldPath": "id", "message": "Invalid ID"}]

    def test_get_user_by_id_not_found(self, client):
        """Test fetching a non-existent user returns 404."""
        response = client.get(f"/user/{UNKNOWN_ID}")
        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    def test_get_user_is_case_sensitive(self, client):
        """Test that an upper-cased id does not match the stored one."""
        response = client.get(f"/user/{EMMA_ID.upper()}")
        assert response.status_code == 404

    def test_not_found_status_is_configurable(self, client, monkeypatch):
        """Test mapping NotFound to a generic server error."""
        monkeypatch.setattr(app.state, "not_found_status", 500)
        response = client.get(f"/user/{UNKNOWN_ID}")
        assert response.status_code == 500
        assert response.json()["detail"] == "User not found"


class TestUpdateUser:
    """Tests for PATCH /user/{id} endpoint."""

    def test_update_user_success(self, client):
        """Test that supplied fields change and the rest are kept."""
        before = client.get(f"/user/{EMMA_ID}").json()
        response = client.patch(f"/user/{EMMA_ID}", json={"lastName": "Smith"})
        assert response.status_code == 200
        data = response.json()
        assert data["lastName"] == "Smith"
        assert data["firstName"] == before["firstName"]
        assert data["email"] == before["email"]
        assert data["createdAt"] == before["createdAt"]
        assert data["updatedAt"] != before["updatedAt"]

    def test_update_cannot_change_id_or_created_at(self, client):
        """Test that id and createdAt in the body are ignored."""
        response = client.patch(f"/user/{EMMA_ID}", json={"id": UNKNOWN_ID, "createdAt": "1999-01-01T00:00:00Z"})
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == EMMA_ID
        assert data["createdAt"] == "2023-01-15T08:30:00Z"

    def test_empty_update_refreshes_updated_at(self, client):
        """Test that a no-op update still touches updatedAt."""
        response = client.patch(f"/user/{EMMA_ID}")
        assert response.status_code == 200
        assert response.json()["updatedAt"] != "2023-08-22T14:15:30Z"

    def test_update_keeps_position(self, client):
        """Test that the updated user stays at the same index."""
        client.patch(f"/user/{EMMA_ID}", json={"firstName": "Emily"})
        data = client.get("/users").json()
        assert data[0]["firstName"] == "Emily"
        assert len(data) == 10

    def test_update_invalid_body(self, client):
        """Test that an invalid field is rejected and nothing changes."""
        response = client.patch(f"/user/{EMMA_ID}", json={"email": "nope"})
        assert response.status_code == 400
        assert response.json()["details"] == [{"fieldPath": "email", "message": "Invalid email address"}]
        assert client.get(f"/user/{EMMA_ID}").json()["email"] == "emma.johnson@email.com"

    def test_update_params_checked_before_body(self, client):
        """Test that an invalid id is reported before the body."""
        response = client.patch("/user/not-a-uuid", json={"email": "nope"})
        assert response.status_code == 400
        assert response.json()["details"] == [{"fieldPath": "id", "message": "Invalid ID"}]

    def test_update_user_not_found(self, client):
        """Test updating a non-existent user returns 404."""
        response = client.patch(f"/user/{UNKNOWN_ID}", json={"lastName": "X"})
        assert response.status_code == 404


class TestDeleteUser:
    """Tests for DELETE /user/{id} endpoint."""

    def test_delete_user_success(self, client):
        """Test that the removed user is returned and gone afterwards."""
        response = client.delete(f"/user/{EMMA_ID}")
        assert response.status_code == 200
        assert response.json()["id"] == EMMA_ID
        assert client.get(f"/user/{EMMA_ID}").status_code == 404

    def test_delete_preserves_order(self, client):
        """Test that the other users keep their relative order."""
        before = [u["id"] for u in client.get("/users").json()]
        victim = before[3]
        client.delete(f"/user/{victim}")
        after = [u["id"] for u in client.get("/users").json()]
        assert after == [i for i in before if i != victim]

    def test_delete_user_not_found(self, client):
        """Test deleting a non-existent user returns 404."""
        response = client.delete(f"/user/{UNKNOWN_ID}")
        assert response.status_code == 404
        assert len(users_store) == 10

    def test_delete_invalid_id(self, client):
        """Test that a non-UUID id is a validation error."""
        assert client.delete("/user/123").status_code == 400


class TestCorrelationId:
    """Tests for correlation ID (trace-id) propagation."""

    def test_trace_id_propagation(self, client):
        """Test that provided X-Trace-ID is propagated in response."""
        trace_id = "test-trace-id-12345"
        response = client.get("/users", headers={"X-Trace-ID": trace_id})
        assert response.headers.get("X-Trace-ID") == trace_id

    def test_trace_id_generated_when_not_provided(self, client):
        """Test that X-Trace-ID is generated when not provided."""
        response = client.get("/users")
        assert len(response.headers["X-Trace-ID"]) == 36


class TestAccessLog:
    """Tests for the access log response time format."""

    def test_milliseconds(self):
        assert format_response_time(0.0123456) == "12.346 ms"

    def test_seconds(self):
        assert format_response_time(1.5) == "1.500 s"
