import pytest

from repo_webscripts.repository import NodeRef, Repository
from repo_webscripts.auth.context import AuthenticationContext
from repo_webscripts.webscripts.description import Description
from repo_webscripts.webscripts.registry import DuplicateWebScriptError, Registry


class StubScript:
    def __init__(self, script_id, uri, method="GET"):
        self.description = Description(id=script_id, uris=[uri], method=method)

    async def execute(self, req, res):
        pass


@pytest.fixture
def registry():
    reg = Registry()
    reg.register(StubScript("servers.list", "/api/wcm/webprojects/{webproject}/deploymentservers"))
    reg.register(StubScript("servers.get", "/api/wcm/webprojects/{webproject}/deploymentservers/{serverid}"))
    reg.register(StubScript("servers.new", "/api/wcm/webprojects/{webproject}/deploymentservers/new"))
    reg.register(StubScript("servers.post", "/api/wcm/webprojects/{webproject}/deploymentservers", method="POST"))
    return reg


def test_match_extracts_template_vars(registry):
    match = registry.find("GET", "/api/wcm/webprojects/www/deploymentservers/abc-123")

    assert match.web_script.description.id == "servers.get"
    assert match.template_vars == {"webproject": "www", "serverid": "abc-123"}


def test_match_is_method_specific(registry):
    assert registry.find("POST", "/api/wcm/webprojects/www/deploymentservers").web_script.description.id == "servers.post"
    assert registry.find("DELETE", "/api/wcm/webprojects/www/deploymentservers") is None


def test_literal_segment_preferred(registry):
    match = registry.find("get", "/api/wcm/webprojects/www/deploymentservers/new")

    assert match.web_script.description.id == "servers.new"


def test_trailing_slash_tolerated(registry):
    assert registry.find("GET", "/api/wcm/webprojects/www/deploymentservers/") is not None


def test_variables_do_not_span_segments(registry):
    assert registry.find("GET", "/api/wcm/webprojects/a/b/deploymentservers") is None


def test_duplicate_id_rejected(registry):
    with pytest.raises(DuplicateWebScriptError):
        registry.register(StubScript("servers.list", "/other"))


def test_duplicate_route_rejected(registry):
    with pytest.raises(DuplicateWebScriptError):
        registry.register(StubScript("servers.list2", "/api/wcm/webprojects/{webproject}/deploymentservers"))


def test_descriptions_sorted(registry):
    ids = [d.id for d in registry.get_descriptions()]

    assert ids == sorted(ids)
    assert len(registry) == 4


def test_node_ref_parse_round_trip():
    ref = NodeRef.parse("workspace://SpacesStore/5c9e1f3a")

    assert ref.store_ref == "workspace://SpacesStore"
    assert ref.id == "5c9e1f3a"
    assert str(ref) == "workspace://SpacesStore/5c9e1f3a"

    with pytest.raises(ValueError):
        NodeRef.parse("not-a-node-ref")


def test_person_refs_are_stable_per_user():
    repository = Repository()
    alice = AuthenticationContext()
    alice.set_current_user("alice")
    bob = AuthenticationContext()
    bob.set_current_user("bob")

    assert repository.get_person(alice) == repository.get_person(alice)
    assert repository.get_person(alice) != repository.get_person(bob)
    assert repository.get_person(AuthenticationContext()) is None
