import logging
from datetime import timedelta

import pytest
import requests

from watercan.core import config
from watercan.core.exceptions import AccessDenied, NotAuthenticated, RoleLookupError
from watercan.models.enums import AppRole
from watercan.utils import auth
from watercan.utils.auth import Caller, create_access_token, ensure_self_or_owner, require_owner, resolve_role

from conftest import CUSTOMER_ID, OWNER_ID


def _failing(caller_id, claims, db):
    raise RoleLookupError("identity provider unreachable")


def _silent(caller_id, claims, db):
    return None


def _owner(caller_id, claims, db):
    return AppRole.owner


class TestResolveRole:
    def test_first_definite_answer_wins(self, db):
        resolution = resolve_role("u1", {}, db, strategies=[("silent", _silent), ("owner", _owner)])

        assert resolution.role == AppRole.owner
        assert resolution.source == "owner"
        assert resolution.failures == []

    def test_failures_are_recorded_and_skipped(self, db, caplog):
        with caplog.at_level(logging.WARNING, logger="watercan.utils.auth"):
            resolution = resolve_role("u1", {}, db, strategies=[("remote", _failing), ("owner", _owner)])

        assert resolution.role == AppRole.owner
        assert resolution.failures == [("remote", "identity provider unreachable")]
        assert "Role strategy remote failed" in caplog.text

    def test_falls_back_to_customer(self, db):
        resolution = resolve_role("u1", {}, db, strategies=[("remote", _failing), ("silent", _silent)])

        assert resolution.role == AppRole.customer
        assert resolution.source == "fallback"
        assert len(resolution.failures) == 1

    def test_default_chain_reads_token_claim(self, db):
        resolution = resolve_role("u1", {"role": "owner"}, db)
        assert (resolution.role, resolution.source) == (AppRole.owner, "token_claim")

    def test_default_chain_reads_customer_record(self, db, make_customer):
        make_customer(OWNER_ID, name="Shop Owner", role=AppRole.owner)

        resolution = resolve_role(OWNER_ID, {"role": "superuser"}, db)

        assert (resolution.role, resolution.source) == (AppRole.owner, "customer_record")

    def test_default_chain_defaults_to_customer(self, db):
        resolution = resolve_role("stranger", {}, db)
        assert (resolution.role, resolution.source) == (AppRole.customer, "default")


class TestIdentityProviderRole:
    def test_skipped_when_not_configured(self, db, monkeypatch):
        monkeypatch.setattr(config, "IDENTITY_PROVIDER_URL", None)
        assert auth.identity_provider_role("u1", {}, db) is None

    def test_reads_public_metadata(self, db, monkeypatch):
        class _Response:
            def raise_for_status(self):
                pass

            def json(self):
                return {"public_metadata": {"role": "owner"}}

        calls = []

        def _get(url, headers, timeout):
            calls.append(url)
            return _Response()

        monkeypatch.setattr(config, "IDENTITY_PROVIDER_URL", "https://idp.example.com/v1/")
        monkeypatch.setattr(auth.requests, "get", _get)

        assert auth.identity_provider_role("u1", {}, db) == AppRole.owner
        assert calls == ["https://idp.example.com/v1/users/u1"]

    def test_unreachable_provider_raises_lookup_error(self, db, monkeypatch):
        def _get(url, headers, timeout):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(config, "IDENTITY_PROVIDER_URL", "https://idp.example.com")
        monkeypatch.setattr(auth.requests, "get", _get)

        with pytest.raises(RoleLookupError):
            auth.identity_provider_role("u1", {}, db)

        # The chain carries on to the next strategy
        resolution = resolve_role("u1", {"role": "owner"}, db)
        assert resolution.role == AppRole.owner
        assert resolution.failures[0][0] == "identity_provider"


    @pytest.mark.parametrize("payload", [
        {"public_metadata": {"role": ["owner"]}},
        {"public_metadata": {"role": {"name": "owner"}}},
        {"public_metadata": {"role": 1}},
        {"public_metadata": ["owner"]},
        ["owner"],
    ])
    def test_malformed_metadata_is_no_answer(self, db, monkeypatch, payload):
        class _Response:
            def raise_for_status(self):
                pass

            def json(self):
                return payload

        monkeypatch.setattr(config, "IDENTITY_PROVIDER_URL", "https://idp.example.com")
        monkeypatch.setattr(auth.requests, "get", lambda url, headers, timeout: _Response())

        assert auth.identity_provider_role("u1", {}, db) is None

        resolution = resolve_role("u1", {"role": "owner"}, db)
        assert (resolution.role, resolution.source) == (AppRole.owner, "token_claim")

    @pytest.mark.parametrize("value", [["owner"], {"role": "owner"}, None, 3])
    def test_non_string_roles_are_ignored(self, value):
        assert auth._as_role(value) is None


class TestGuards:
    def test_require_owner(self):
        owner = Caller(caller_id=OWNER_ID, role=AppRole.owner)
        assert require_owner(owner) is owner

        with pytest.raises(AccessDenied) as exc:
            require_owner(Caller(caller_id=CUSTOMER_ID, role=AppRole.customer))
        assert exc.value.message == "Permission denied. Required role: owner"

    def test_self_or_owner(self):
        ensure_self_or_owner(Caller(CUSTOMER_ID, AppRole.customer), CUSTOMER_ID)
        ensure_self_or_owner(Caller(OWNER_ID, AppRole.owner), CUSTOMER_ID)

        with pytest.raises(AccessDenied):
            ensure_self_or_owner(Caller("user_bob", AppRole.customer), CUSTOMER_ID)


class TestBearerTokens:
    def test_valid_token_identifies_caller(self, client):
        token = create_access_token({"sub": OWNER_ID, "role": "owner", "name": "Shop Owner"})

        response = client.get("/api/v1/dashboard/summary", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    def test_customer_token_is_forbidden_on_owner_routes(self, client):
        token = create_access_token({"sub": CUSTOMER_ID})

        response = client.get("/api/v1/dashboard/summary", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_missing_token(self, client):
        response = client.get("/api/v1/dashboard/summary")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_expired_token(self, client):
        token = create_access_token({"sub": OWNER_ID}, expires_delta=timedelta(minutes=-5))

        response = client.get("/api/v1/dashboard/summary", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Token has expired"

    def test_tampered_token(self, client):
        token = create_access_token({"sub": OWNER_ID, "role": "owner"}) + "x"

        response = client.get("/api/v1/dashboard/summary", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"
