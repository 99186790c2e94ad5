import uuid
from datetime import timedelta

import pytest
from jose import jwt

from fleetdesk.utils.exceptions import TokenExpiredException, UnauthorizedException
from fleetdesk.utils.security import verify_access_token

from conftest import make_token


def test_valid_token_returns_claims():
    user_id = uuid.uuid4()
    claims = verify_access_token(make_token(user_id))
    assert claims["sub"] == str(user_id)


def test_expired():
    with pytest.raises(TokenExpiredException):
        verify_access_token(make_token(uuid.uuid4(), expires_in=timedelta(minutes=-5)))


def test_wrong_secret():
    token = jwt.encode({"sub": str(uuid.uuid4()), "aud": "authenticated"}, "not-the-secret", algorithm="HS256")
    with pytest.raises(UnauthorizedException):
        verify_access_token(token)


def test_missing_subject():
    with pytest.raises(UnauthorizedException):
        verify_access_token(make_token(uuid.uuid4(), sub=""))


def test_garbage():
    with pytest.raises(UnauthorizedException):
        verify_access_token("not-a-jwt")
