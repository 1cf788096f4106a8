# tests/test_tokens.py — Password hashing and JWT round trips
from datetime import timedelta

import pytest
from jose import jwt

import config
from auth import TokenService, InvalidTokenError, ACCESS_TOKEN, REFRESH_TOKEN
from models import User, UserRole


def _user(**overrides) -> User:
    fields = dict(id="7b4d7a44-3c1e-4d59-9a0e-2f3c6f0f0a11", email="a@b.test", name="A", role=UserRole.ADMIN)
    fields.update(overrides)
    return User(**fields)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = TokenService.hash_password("CorrectHorse9")
        assert hashed != "CorrectHorse9"
        assert TokenService.verify_password("CorrectHorse9", hashed)
        assert not TokenService.verify_password("WrongHorse9", hashed)

    def test_hash_uses_configured_rounds(self):
        hashed = TokenService.hash_password("CorrectHorse9")
        assert hashed.startswith(f"$2b${config.BCRYPT_ROUNDS:02d}$")

    def test_overlong_password_never_verifies(self):
        hashed = TokenService.hash_password("A" * 72)
        assert not TokenService.verify_password("A" * 73, hashed)

    def test_malformed_hash(self):
        assert not TokenService.verify_password("anything", "not-a-bcrypt-hash")

    @pytest.mark.asyncio
    async def test_async_variants(self):
        hashed = await TokenService.hash_password_async("CorrectHorse9")
        assert await TokenService.verify_password_async("CorrectHorse9", hashed)


class TestJwt:
    def test_access_token_claims(self):
        user = _user()
        payload = TokenService.verify_token(TokenService.create_access_token(user))
        assert payload.subject_id == user.id
        assert payload.email == "a@b.test"
        assert payload.role == "admin"
        assert payload.token_type == ACCESS_TOKEN
        assert payload.jti

    def test_refresh_token_type(self):
        token = TokenService.create_refresh_token(_user())
        assert TokenService.verify_token(token, expected_type=REFRESH_TOKEN).token_type == REFRESH_TOKEN
        with pytest.raises(InvalidTokenError):
            TokenService.verify_token(token, expected_type=ACCESS_TOKEN)

    def test_expired_token(self):
        token = TokenService.create_access_token(_user(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(InvalidTokenError):
            TokenService.verify_token(token)

    def test_wrong_secret(self):
        forged = jwt.encode({"sub": "x", "type": ACCESS_TOKEN}, "another-secret", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            TokenService.verify_token(forged)

    def test_missing_subject(self):
        token = jwt.encode({"type": ACCESS_TOKEN}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
        with pytest.raises(InvalidTokenError):
            TokenService.verify_token(token)

    def test_tokens_are_unique(self):
        user = _user()
        assert TokenService.create_access_token(user) != TokenService.create_access_token(user)
