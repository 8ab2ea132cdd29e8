import time
from typing import Any, Dict, List

import jwt
import pytest
from pydantic import SecretStr

from repo_webscripts.config import settings

TEST_SECRET = "test-secret-for-webscripts-must-be-long-enough"

# Mock settings for testing
settings.jwt_secret = SecretStr(TEST_SECRET)
settings.jwt_algo = "HS256"
settings.jwt_issuer = "repo-auth"
settings.jwt_audience = "repo-webscripts"


def create_token(
    user="alice",
    authorities=None,
    issuer=None,
    audience=None,
    expired=False,
    secret=None,
):
    if authorities is None:
        authorities = []
    now = int(time.time())
    iat = now - 3600 if expired else now
    exp = iat - 10 if expired else now + 60

    payload = {
        "iss": issuer or settings.jwt_issuer,
        "aud": audience or settings.jwt_audience,
        "iat": iat,
        "exp": exp,
        "sub": user,
        "authorities": authorities,
    }
    return jwt.encode(payload, secret or TEST_SECRET, algorithm="HS256")


class FakeResult:
    def __init__(self, rows):
        self._rows = rows

    def scalars(self):
        return self

    def all(self):
        return list(self._rows)


class FakeSession:
    """
    In-memory stand-in for an AsyncSession. All sessions opened from one
    FakeSessionFactory share its rows.
    """

    def __init__(self, factory: "FakeSessionFactory") -> None:
        self._factory = factory
        self._pending: List[Any] = []
        self.commits = 0
        self.rollbacks = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def add(self, obj):
        self._pending.append(obj)

    async def flush(self):
        for obj in self._pending:
            self._factory.rows[obj.node_id] = obj
        self._pending.clear()

    async def get(self, model, key):
        return self._factory.rows.get(key)

    async def execute(self, stmt):
        # Only the web_project equality filter is bound
        wanted = set(stmt.compile().params.values())
        rows = [r for r in self._factory.rows.values() if r.web_project in wanted]
        return FakeResult(rows)

    async def commit(self):
        await self.flush()
        self.commits += 1
        self._factory.commits += 1

    async def rollback(self):
        self._pending.clear()
        self.rollbacks += 1
        self._factory.rollbacks += 1


class FakeSessionFactory:
    def __init__(self) -> None:
        self.rows: Dict[str, Any] = {}
        self.sessions: List[FakeSession] = []
        self.commits = 0
        self.rollbacks = 0

    def __call__(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session


@pytest.fixture
def session_factory():
    return FakeSessionFactory()
