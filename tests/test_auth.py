"""Tests for bearer token authentication."""

from mindsort.auth import CurrentUser, TokenAuthenticator


class TestTokenAuthenticator:
    def test_known_token(self) -> None:
        auth = TokenAuthenticator({"secret": {"id": "user-1", "email": "me@example.com"}})
        assert auth.get_current_user("secret") == CurrentUser(id="user-1", email="me@example.com")

    def test_string_shorthand(self) -> None:
        auth = TokenAuthenticator({"secret": "user-2"})
        assert auth.get_current_user("secret").id == "user-2"

    def test_unknown_or_missing_token(self) -> None:
        auth = TokenAuthenticator({"secret": "user-1"})
        assert auth.get_current_user("wrong") is None
        assert auth.get_current_user("") is None
        assert auth.get_current_user(None) is None

    def test_no_tokens_rejects_everything(self, config) -> None:
        auth = TokenAuthenticator(config=config)
        assert auth.get_current_user("anything") is None
