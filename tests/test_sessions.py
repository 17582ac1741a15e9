import pytest
from sqlalchemy.exc import SQLAlchemyError

from models import storage
from models.user import User
from services import sessions
from services.exceptions import InvalidCredentials, InvalidToken, MissingProviderEmail, ValidationError
from services.sessions import OAuthOutcome
from utils.security import placeholder_hash, verify_password


def test_refresh_loses_race_to_concurrent_rotation(app_ctx, make_user, monkeypatch):
    user = make_user()
    pair, _ = sessions.login("alice@example.com", "password123")
    real_verify = sessions.verify_password

    def verify_then_rotate_elsewhere(token, digest):
        ok = real_verify(token, digest)
        # another request rotates the same token between our check and our write
        storage.get_session().query(User).filter(User.id == user.id).update(
            {User.refresh_token_hash: "rotated-by-someone-else"}, synchronize_session=False
        )
        return ok

    monkeypatch.setattr(sessions, "verify_password", verify_then_rotate_elsewhere)
    with pytest.raises(InvalidToken):
        sessions.refresh(pair.refresh_token)


def test_refresh_requires_active_session(app_ctx, make_user):
    make_user()
    pair, user = sessions.login("alice@example.com", "password123")
    sessions.logout(pair.refresh_token)
    assert storage.get(User, user.id).refresh_token_hash is None
    with pytest.raises(InvalidToken):
        sessions.refresh(pair.refresh_token)


def test_logout_revokes_even_a_stale_token(app_ctx, make_user):
    make_user()
    old, user = sessions.login("alice@example.com", "password123")
    sessions.refresh(old.refresh_token)
    # old token no longer matches the stored hash, but identity is established
    sessions.logout(old.refresh_token)
    assert storage.get(User, user.id).refresh_token_hash is None


def test_logout_swallows_storage_failure(app_ctx, make_user, monkeypatch):
    make_user()
    pair, _ = sessions.login("alice@example.com", "password123")

    def broken_save():
        raise SQLAlchemyError("database is gone")

    monkeypatch.setattr(storage, "save", broken_save)
    assert sessions.logout(pair.refresh_token) is None


def test_oauth_creates_new_user(app_ctx):
    resolution = sessions.resolve_oauth_user("google", "g-123", email="New.Person@Example.com", username="New Person")
    assert resolution.outcome is OAuthOutcome.CREATED
    user = resolution.user
    assert user.google_id == "g-123"
    assert user.email == "new.person@example.com"
    assert user.username == "New Person"
    assert user.password_hash
    assert not verify_password("", user.password_hash)


def test_oauth_username_defaults_to_email_local_part(app_ctx):
    resolution = sessions.resolve_oauth_user("google", "g-9", email="carol@example.com")
    assert resolution.user.username == "carol"


def test_oauth_matches_by_provider_id(app_ctx, make_user):
    existing = make_user(google_id="g-123")
    resolution = sessions.resolve_oauth_user("google", "g-123", email=None)
    assert resolution.outcome is OAuthOutcome.PROVIDER_MATCH
    assert resolution.user.id == existing.id


def test_oauth_links_existing_account_by_email(app_ctx, make_user):
    existing = make_user()
    resolution = sessions.resolve_oauth_user("google", "g-456", email="ALICE@example.com")
    assert resolution.outcome is OAuthOutcome.EMAIL_LINKED
    assert resolution.user.id == existing.id
    assert storage.get(User, existing.id).google_id == "g-456"


def test_oauth_does_not_relink_already_linked_account(app_ctx, make_user):
    existing = make_user(google_id="g-original")
    resolution = sessions.resolve_oauth_user("google", "g-other", email="alice@example.com")
    assert resolution.outcome is OAuthOutcome.EMAIL_MATCH
    assert storage.get(User, existing.id).google_id == "g-original"


def test_oauth_facebook_uses_its_own_field(app_ctx, make_user):
    existing = make_user(google_id="g-1")
    resolution = sessions.resolve_oauth_user("facebook", "fb-1", email="alice@example.com")
    assert resolution.outcome is OAuthOutcome.EMAIL_LINKED
    assert storage.get(User, existing.id).facebook_id == "fb-1"


def test_oauth_requires_email_for_unknown_identity(app_ctx):
    with pytest.raises(MissingProviderEmail):
        sessions.resolve_oauth_user("google", "g-unknown", email=None)


def test_oauth_rejects_unknown_provider(app_ctx):
    with pytest.raises(ValidationError):
        sessions.resolve_oauth_user("myspace", "x-1", email="a@example.com")


def test_oauth_issue_starts_session(app_ctx):
    pair, resolution = sessions.oauth_upsert_and_issue("google", "g-777", email="dave@example.com")
    user = storage.get(User, resolution.user.id)
    assert verify_password(pair.refresh_token, user.refresh_token_hash)
    assert sessions.refresh(pair.refresh_token).refresh_token != pair.refresh_token


def test_logout_swallows_unexpected_failure(app_ctx, make_user, monkeypatch):
    make_user()
    pair, _ = sessions.login("alice@example.com", "password123")

    def broken_save():
        raise RuntimeError("driver exploded")

    monkeypatch.setattr(storage, "save", broken_save)
    assert sessions.logout(pair.refresh_token) is None


def test_login_unknown_email_still_runs_a_password_check(app_ctx, monkeypatch):
    checked = []
    real_verify = sessions.verify_password

    def recording_verify(password, digest):
        checked.append(digest)
        return real_verify(password, digest)

    monkeypatch.setattr(sessions, "verify_password", recording_verify)
    with pytest.raises(InvalidCredentials):
        sessions.login("nobody@example.com", "password123")
    assert checked == [placeholder_hash()]


def test_find_user_by_email_normalizes_input(app_ctx, make_user):
    user = make_user()
    assert sessions.find_user_by_email("  ALICE@Example.COM ").id == user.id
    assert sessions.find_user_by_email("bob@example.com") is None
