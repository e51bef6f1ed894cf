"""
Integration tests for the group roster endpoints.
"""

from __future__ import annotations

import pytest

from app.i18n import translate as t
from tests.helpers import RequestRejected

pytestmark = pytest.mark.integration


def test_create_group_makes_caller_leader(api_user):
    leader = api_user()

    group = leader.post("/groups", {"name": "Cleaning Crew", "type": "party"})

    assert group["name"] == "Cleaning Crew"
    assert group["type"] == "party"
    assert group["leader"] == leader.id
    assert group["memberIds"] == [leader.id]
    assert group["managers"] == []


@pytest.mark.parametrize("payload", [{"name": ""}, {"name": "ok", "type": "tavern"}])
def test_create_group_validates_payload(api_user, payload):
    with pytest.raises(RequestRejected) as exc_info:
        api_user().post("/groups", payload)

    assert exc_info.value.status_code == 400


def test_join_group_adds_member(populated_group):
    guild = populated_group(members=1)

    group = guild.members[0].get(f"/groups/{guild.id}")

    assert group["memberIds"] == [guild.leader.id, guild.members[0].id]


def test_join_twice_is_rejected(populated_group):
    guild = populated_group(members=1)

    with pytest.raises(RequestRejected) as exc_info:
        guild.members[0].post(f"/groups/{guild.id}/join")

    assert exc_info.value.body["message"] == t("alreadyGroupMember")


def test_leader_adds_and_removes_manager(populated_group):
    guild = populated_group(members=1)
    member = guild.members[0]

    promoted = guild.leader.post(f"/groups/{guild.id}/add-manager", {"managerId": member.id})
    demoted = guild.leader.post(f"/groups/{guild.id}/remove-manager", {"managerId": member.id})

    assert promoted["managers"] == [member.id]
    assert demoted["managers"] == []


def test_only_leader_can_add_managers(populated_group):
    guild = populated_group(members=2)

    with pytest.raises(RequestRejected) as exc_info:
        guild.members[0].post(f"/groups/{guild.id}/add-manager", {"managerId": guild.members[1].id})

    assert exc_info.value.body == {
        "code": 401,
        "error": "NotAuthorized",
        "message": t("onlyGroupLeaderCanManageManagers"),
    }


def test_add_manager_requires_member(populated_group, api_user):
    guild = populated_group(members=0)
    outsider = api_user()

    with pytest.raises(RequestRejected) as exc_info:
        guild.leader.post(f"/groups/{guild.id}/add-manager", {"managerId": outsider.id})

    assert exc_info.value.body["message"] == t("userIsNotGroupMember")


def test_add_manager_requires_manager_id(populated_group):
    guild = populated_group(members=0)

    with pytest.raises(RequestRejected) as exc_info:
        guild.leader.post(f"/groups/{guild.id}/add-manager", {})

    assert exc_info.value.body["message"] == t("managerIdRequired")


def test_outsider_cannot_read_group(populated_group, api_user):
    guild = populated_group(members=0)

    with pytest.raises(RequestRejected) as exc_info:
        api_user().get(f"/groups/{guild.id}")

    assert exc_info.value.status_code == 404
