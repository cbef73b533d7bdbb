import pytest

from core.auth import Role, Session, SessionRegistry, StaticCredentialProvider, ensure_admin
from core.config import Settings
from core.errors import NotAuthenticated, NotAuthorized


@pytest.fixture
def provider():
    return StaticCredentialProvider(Settings())


@pytest.fixture
def registry(provider):
    return SessionRegistry(provider)


class TestStaticCredentialProvider:
    def test_admin_login(self, provider):
        session = provider.authenticate("admin", "asdf123")
        assert session.username == "Admin"
        assert session.role is Role.ADMIN

    def test_production_login(self, provider):
        session = provider.authenticate("production", "plast")
        assert session.username == "Production"
        assert session.role is Role.PRODUCTION

    def test_username_is_case_insensitive(self, provider):
        assert provider.authenticate("ADMIN", "asdf123") is not None
        assert provider.authenticate(" Production ", "plast") is not None

    def test_password_is_case_sensitive(self, provider):
        assert provider.authenticate("admin", "ASDF123") is None

    @pytest.mark.parametrize("username,password", [("admin", "plast"), ("nobody", "asdf123"), ("", ""), ("admin", None)])
    def test_rejects_bad_credentials(self, provider, username, password):
        assert provider.authenticate(username, password) is None

    def test_each_login_gets_its_own_token(self, provider):
        a = provider.authenticate("admin", "asdf123")
        b = provider.authenticate("admin", "asdf123")
        assert a.token != b.token


class TestSessionRegistry:
    def test_session_lifecycle(self, registry):
        assert registry.resolve("missing") is None

        session = registry.open("admin", "asdf123")
        assert registry.resolve(session.token) == session

        assert registry.close(session.token) is True
        assert registry.resolve(session.token) is None
        assert registry.close(session.token) is False

    def test_bad_login_raises(self, registry):
        with pytest.raises(NotAuthenticated):
            registry.open("admin", "wrong")

    def test_resolve_empty_token(self, registry):
        assert registry.resolve(None) is None
        assert registry.resolve("") is None


def test_ensure_admin():
    admin = Session(username="Admin", role=Role.ADMIN)
    assert ensure_admin(admin) is admin

    with pytest.raises(NotAuthorized):
        ensure_admin(Session(username="Production", role=Role.PRODUCTION))
    with pytest.raises(NotAuthenticated):
        ensure_admin(None)
