"""
인증/권한 단위 테스트: 비밀번호 해시, 토큰, 등록 규칙, 조회·수정 권한.
"""

from datetime import timedelta

import pytest
from sqlmodel import Session

from app.db.models import Quiz
from app.services.auth import (
    EmailAlreadyRegisteredError,
    Identity,
    RegistrationError,
    authenticate_user,
    can_modify,
    can_view,
    create_access_token,
    decode_access_token,
    hash_password,
    register_user,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("password123")
    assert hashed != "password123"
    assert verify_password("password123", hashed)
    assert not verify_password("wrong-password", hashed)


def test_access_token_round_trip():
    assert decode_access_token(create_access_token(42)) == 42


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_garbage_token_is_rejected(token):
    assert decode_access_token(token) is None


def test_expired_token_is_rejected():
    assert decode_access_token(create_access_token(1, expires_delta=timedelta(seconds=-5))) is None


def test_register_normalizes_email(engine):
    with Session(engine) as session:
        user = register_user(session, email="  Carol@Example.COM ", name="Carol", password="password123")
        assert user.email == "carol@example.com"
        assert user.role == "user"
        assert authenticate_user(session, "CAROL@example.com", "password123").id == user.id
        assert authenticate_user(session, "carol@example.com", "nope-nope") is None


def test_register_rejects_duplicate_email(engine, alice):
    with Session(engine) as session:
        with pytest.raises(EmailAlreadyRegisteredError):
            register_user(session, email="alice@example.com", name="Alice Two", password="password123")


@pytest.mark.parametrize(
    "email, name, password",
    [
        ("no-at-sign", "Dave", "password123"),
        ("dave@example.com", "D", "password123"),
        ("dave@example.com", "Dave", "short"),
    ],
)
def test_register_rules(engine, email, name, password):
    with Session(engine) as session:
        with pytest.raises(RegistrationError):
            register_user(session, email=email, name=name, password=password)


def _quiz(owner_id=1, visibility="public"):
    return Quiz(id=1, owner_id=owner_id, title="Quiz", questions=[], visibility=visibility, tags=[])


def test_public_quiz_is_visible_to_everyone():
    quiz = _quiz()
    assert can_view(None, quiz)
    assert can_view(Identity(user_id=2), quiz)


def test_private_quiz_visible_to_owner_and_admin_only():
    quiz = _quiz(visibility="private")
    assert not can_view(None, quiz)
    assert not can_view(Identity(user_id=2), quiz)
    assert can_view(Identity(user_id=1), quiz)
    assert can_view(Identity(user_id=99, role="admin"), quiz)


def test_modify_requires_owner_or_admin():
    quiz = _quiz()
    assert not can_modify(None, quiz)
    assert not can_modify(Identity(user_id=2), quiz)
    assert can_modify(Identity(user_id=1), quiz)
    assert can_modify(Identity(user_id=2, role="admin"), quiz)
