import pytest
from pydantic import SecretStr
from unittest.mock import patch

from repo_webscripts.auth.authority import (
    READ,
    WRITE,
    AccessStatus,
    AuthorityPermissionService,
    ContextAuthorityService,
)
from repo_webscripts.auth.context import AuthenticationContext, preserved_authentication
from repo_webscripts.auth.security import BearerTokenAuthenticator
from repo_webscripts.core.errors import WebScriptError
from repo_webscripts.repository import Repository
from repo_webscripts.webscripts.description import RequiredAuthentication
from repo_webscripts.webscripts.runtime import WebScriptResponse

from conftest import create_token


def authenticate(header, required=RequiredAuthentication.user, is_guest=False):
    context = AuthenticationContext()
    response = WebScriptResponse()
    ok = BearerTokenAuthenticator(header, response, context).authenticate(required, is_guest)
    return ok, context, response


# ---------------------------------------------------------------------
# Bearer token authenticator
# ---------------------------------------------------------------------

def test_valid_token_installs_principal():
    token = create_token(user="alice", authorities=["GROUP_EDITORS"])

    ok, context, response = authenticate(f"Bearer {token}")

    assert ok is True
    assert context.get_current_user() == "alice"
    assert context.get_current_principal().authorities == ["GROUP_EDITORS"]
    assert response.status == 200


def test_missing_header_challenges():
    ok, context, response = authenticate(None)

    assert ok is False
    assert context.get_current_user() is None
    assert response.status == 401
    assert response.headers["WWW-Authenticate"].startswith("Bearer")


def test_non_bearer_scheme_challenges():
    ok, _, response = authenticate("Basic YWxpY2U6c2VjcmV0")

    assert ok is False
    assert response.status == 401


def test_expired_token_rejected():
    ok, _, response = authenticate(f"Bearer {create_token(expired=True)}")

    assert ok is False
    assert "expired" in response.get_content()


def test_wrong_issuer_rejected():
    ok, _, response = authenticate(f"Bearer {create_token(issuer='someone-else')}")

    assert ok is False
    assert "issuer" in response.get_content()


def test_wrong_audience_rejected():
    ok, _, response = authenticate(f"Bearer {create_token(audience='wrong-audience')}")

    assert ok is False
    assert "audience" in response.get_content()


def test_wrong_signature_rejected():
    token = create_token(secret="wrong-secret-key-that-is-long-enough")

    ok, _, response = authenticate(f"Bearer {token}")

    assert ok is False
    assert "Invalid" in response.get_content()


def test_guest_needs_no_token():
    ok, context, _ = authenticate(None, required=RequiredAuthentication.guest, is_guest=True)

    assert ok is True
    assert context.get_current_user() == "guest"


def test_missing_secret_is_server_error():
    with patch("repo_webscripts.auth.security.settings.jwt_secret", SecretStr("")):
        with pytest.raises(WebScriptError) as excinfo:
            authenticate(f"Bearer {create_token()}")

    assert excinfo.value.status_code == 500


# ---------------------------------------------------------------------
# Authentication context
# ---------------------------------------------------------------------

def test_preserved_authentication_restores_on_error():
    context = AuthenticationContext()
    original = context.set_current_user("bob", ["GROUP_EDITORS"])

    with pytest.raises(RuntimeError):
        with preserved_authentication(context) as captured:
            assert captured == original
            context.set_current_user("alice")
            raise RuntimeError("boom")

    assert context.get_current_principal() == original


def test_preserved_authentication_clears_when_empty():
    context = AuthenticationContext()

    with preserved_authentication(context):
        context.set_current_user("alice")

    assert context.get_current_principal() is None


# ---------------------------------------------------------------------
# Authority and permissions
# ---------------------------------------------------------------------

def test_admin_authority():
    service = ContextAuthorityService(frozenset({"GROUP_ALFRESCO_ADMINISTRATORS"}))
    context = AuthenticationContext()

    assert service.has_admin_authority(context) is False

    context.set_current_user("alice", ["GROUP_EDITORS"])
    assert service.has_admin_authority(context) is False

    context.set_current_user("root", ["GROUP_ALFRESCO_ADMINISTRATORS"])
    assert service.has_admin_authority(context) is True


def test_permissions():
    repository = Repository()
    service = AuthorityPermissionService(repository, ContextAuthorityService(frozenset({"admin"})))
    company_home = repository.get_company_home()
    root_home = repository.get_root_home()
    context = AuthenticationContext()

    assert service.has_permission(context, company_home, READ) == AccessStatus.DENIED

    context.set_current_user("alice")
    assert service.has_permission(context, company_home, READ) == AccessStatus.ALLOWED
    assert service.has_permission(context, company_home, WRITE) == AccessStatus.DENIED
    assert service.has_permission(context, root_home, READ) == AccessStatus.DENIED

    context.set_current_user("root", ["admin"])
    assert service.has_permission(context, root_home, READ) == AccessStatus.ALLOWED
    assert service.has_permission(context, company_home, WRITE) == AccessStatus.ALLOWED
