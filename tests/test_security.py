import time
import warnings

import jwt
import pytest

from revenue_api.auth import security


def test_access_token_round_trips_identity():
    token = security.build_access_token(user_id="user-1", name="Felps")

    claims = security.decode_access_token(token)

    assert claims.id == "user-1"
    assert claims.name == "Felps"
    assert claims.type == security.ACCESS
    assert claims.exp - claims.iat == 3600


def test_refresh_token_uses_its_own_ttl(monkeypatch):
    monkeypatch.setenv("REFRESH_TOKEN_TTL_SECONDS", "120")

    claims = security.decode_refresh_token(security.build_refresh_token(user_id="u", name="n"))

    assert claims.exp - claims.iat == 120


def test_access_token_is_rejected_as_refresh_token():
    access = security.build_access_token(user_id="user-1", name="Felps")

    with pytest.raises(security.InvalidTokenError):
        security.decode_refresh_token(access)


def test_refresh_token_is_rejected_as_access_token(monkeypatch):
    # Same secret for both: only the type claim tells them apart.
    monkeypatch.delenv("REFRESH_JWT_SECRET")
    refresh = security.build_refresh_token(user_id="user-1", name="Felps")

    with pytest.raises(security.InvalidTokenError):
        security.decode_access_token(refresh)


def test_refresh_secret_falls_back_to_access_secret(monkeypatch):
    monkeypatch.delenv("REFRESH_JWT_SECRET")

    assert security.refresh_jwt_secret() == "test-access-secret-0123456789abcdef"


def test_expired_token_is_rejected():
    past = int(time.time()) - 10
    token = jwt.encode(
        {"id": "u", "name": "n", "sub": "u", "type": "access", "iat": past - 60, "exp": past},
        "test-access-secret-0123456789abcdef",
        algorithm="HS256",
    )

    with pytest.raises(security.InvalidTokenError, match="expired"):
        security.decode_access_token(token)


def test_wrong_signature_is_rejected():
    token = security.sign_token(
        user_id="u", name="n", token_type="access", secret="another-secret-0123456789abcdef0123", ttl_seconds=60
    )

    with pytest.raises(security.InvalidTokenError):
        security.decode_access_token(token)


def test_subject_must_match_id():
    now = int(time.time())
    token = jwt.encode(
        {"id": "u", "name": "n", "sub": "someone-else", "type": "access", "iat": now, "exp": now + 60},
        "test-access-secret-0123456789abcdef",
        algorithm="HS256",
    )

    with pytest.raises(security.InvalidTokenError):
        security.decode_access_token(token)


def test_missing_identity_claims_are_rejected():
    now = int(time.time())
    token = jwt.encode(
        {"sub": "u", "type": "access", "iat": now, "exp": now + 60},
        "test-access-secret-0123456789abcdef",
        algorithm="HS256",
    )

    with pytest.raises(security.InvalidTokenError):
        security.decode_access_token(token)


@pytest.mark.parametrize("token", ["", "   ", "not-a-jwt"])
def test_malformed_tokens_are_rejected(token):
    with pytest.raises(security.InvalidTokenError):
        security.decode_access_token(token)


def test_password_hash_is_salted_and_verifiable():
    first = security.hash_password("123456")
    second = security.hash_password("123456")

    assert first != second
    assert first != "123456"
    assert security.verify_password("123456", first)
    assert not security.verify_password("654321", first)


def test_verify_password_handles_garbage_hash():
    assert not security.verify_password("123456", "not-a-bcrypt-hash")
    assert not security.verify_password("", "whatever")


def test_default_secret_is_long_enough_for_hs256(monkeypatch):
    monkeypatch.delenv("JWT_SECRET")
    monkeypatch.delenv("REFRESH_JWT_SECRET")

    assert len(security.jwt_secret().encode("utf-8")) >= 32
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        token = security.build_access_token(user_id="u", name="n")
        assert security.decode_access_token(token).id == "u"


def test_hash_password_rejects_input_beyond_bcrypt_limit():
    with pytest.raises(security.AuthSecurityError):
        security.hash_password("a" * 73)

    assert security.verify_password("a" * 72, security.hash_password("a" * 72))
