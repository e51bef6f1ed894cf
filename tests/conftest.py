"""
Shared pytest fixtures for the group task test suite.

Fixtures follow the Arrange-Act-Assert (AAA) pattern and ensure test
isolation by giving every test a fresh database.

Key Concepts Demonstrated:
- Session-scoped app creation, function-scoped database lifecycle
- Factory fixtures for users, groups and tasks
- In-process JWT identities instead of a live identity provider
"""

from __future__ import annotations

import itertools
import os
from dataclasses import dataclass, field
from typing import Any

import pytest
from faker import Faker

from tests.helpers import TEST_PUBLIC_KEY, ApiUser

# Set testing environment before importing app
os.environ["FLASK_ENV"] = "testing"
os.environ["TEST_JWT_PUBLIC_KEY"] = TEST_PUBLIC_KEY

from app import create_app, db
from app.models import (
    Group,
    GroupMembership,
    GroupTask,
    MemberRole,
    MemberTask,
    User,
)


fake = Faker()
_user_ids = itertools.count(1000)


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    """
    Create application instance for the test session.

    The 'session' scope means the same app instance is reused for all
    tests; the database itself is reset by ``db_session``.
    """
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """Create a test client for making HTTP requests."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture(scope="function")
def db_session(app):
    """
    Create a fresh database for each test.

    Creates all tables before the test and drops them afterwards so that
    no rows leak between tests.
    """
    with app.app_context():
        db.create_all()
        yield db
        db.session.rollback()
        db.drop_all()


# -----------------------------------------------------------------------------
# API Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def api_user(client, db_session):
    """
    Factory fixture for authenticated API users.

    Every call mints a token for a fresh user id and registers the user by
    fetching their profile once.

    Example:
        def test_something(api_user):
            leader = api_user()
            leader.post("/groups", {"name": "Guild"})
    """

    def _create_user(username: str | None = None) -> ApiUser:
        user = ApiUser(client, next(_user_ids), username or fake.unique.user_name())
        user.sync()
        return user

    return _create_user


@dataclass
class PopulatedGroup:
    """A group created through the API with its leader and members."""

    group: dict[str, Any]
    leader: ApiUser
    members: list[ApiUser] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.group["id"]


@pytest.fixture
def populated_group(api_user):
    """
    Factory fixture creating a guild with a leader and joined members.

    Example:
        guild = populated_group(members=2)
        guild.leader.post(f"/tasks/group/{guild.id}", {...})
    """

    def _create(members: int = 2, name: str = "Test Guild", group_type: str = "guild") -> PopulatedGroup:
        leader = api_user()
        group = leader.post("/groups", {"name": name, "type": group_type})
        joined = []
        for _ in range(members):
            member = api_user()
            member.post(f"/groups/{group['id']}/join")
            joined.append(member)
        return PopulatedGroup(group=group, leader=leader, members=joined)

    return _create


# -----------------------------------------------------------------------------
# Model Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def user_factory(db_session):
    """Factory fixture creating ``User`` rows directly."""

    def _create_user(username: str | None = None, language: str = "en") -> User:
        user = User(id=next(_user_ids), username=username or fake.unique.user_name(), language=language)
        db_session.session.add(user)
        db_session.session.commit()
        return user

    return _create_user


@pytest.fixture
def group_factory(db_session, user_factory):
    """
    Factory fixture creating a ``Group`` with a leader and members.

    Returns:
        Function returning ``(group, leader, members)``.
    """

    def _create_group(members: int = 2, managers: int = 0) -> tuple[Group, User, list[User]]:
        leader = user_factory()
        group = Group(name=fake.company(), leader_id=leader.id)
        db_session.session.add(group)
        db_session.session.flush()
        db_session.session.add(
            GroupMembership(group_id=group.id, user_id=leader.id, role=MemberRole.LEADER.value)
        )
        users = []
        for index in range(members):
            user = user_factory()
            role = MemberRole.MANAGER if index < managers else MemberRole.MEMBER
            db_session.session.add(
                GroupMembership(group_id=group.id, user_id=user.id, role=role.value)
            )
            users.append(user)
        db_session.session.commit()
        return group, leader, users

    return _create_group


@pytest.fixture
def master_factory(db_session):
    """Factory fixture creating ``GroupTask`` rows, optionally with copies."""

    def _create_master(
        group: Group,
        assignees: list[User] | None = None,
        **fields: Any,
    ) -> GroupTask:
        master = GroupTask(group_id=group.id, text=fields.pop("text", fake.sentence(nb_words=3)), **fields)
        db_session.session.add(master)
        db_session.session.flush()
        for user in assignees or []:
            db_session.session.add(MemberTask(
                user_id=user.id,
                group_task_id=master.id,
                group_id=group.id,
                text=master.text,
                type=master.type,
            ))
        db_session.session.commit()
        return master

    return _create_master
