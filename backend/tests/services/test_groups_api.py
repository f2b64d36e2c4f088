"""Group Routes — create/list/detail/rename/delete, membership and auth.

Invariants:
    - Missing or malformed X-User-Id → 401
    - Non-members get 403 on group reads; non-owners get 403 on owner actions
    - Owner cannot leave or kick themselves (400); join is idempotent
    - Delete cascades rounds, votes, results, comments, points, members, markers
"""

from uuid import uuid4

from sqlalchemy import func, select

from mirrio.models import (
    Comment, GroupMember, Points, Round, RoundResult, UsedStatement, Vote,
)


def _auth(user_id) -> dict:
    return {"X-User-Id": str(user_id)}


async def test_missing_identity_is_401(client):
    res = await client.get("/api/v1/groups")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "UNAUTHENTICATED"


async def test_malformed_identity_is_401(client):
    res = await client.get("/api/v1/groups", headers={"X-User-Id": "not-a-uuid"})
    assert res.status_code == 401


async def test_create_group_makes_owner_first_member(client, seed):
    s = await seed()
    owner = uuid4()

    res = await client.post(
        "/api/v1/groups",
        json={"name": "  Office  ", "edition_id": str(s.edition_id)},
        headers=_auth(owner),
    )

    assert res.status_code == 201
    body = res.json()
    assert body["name"] == "Office"
    assert body["owner_id"] == str(owner)
    assert body["member_count"] == 1

    detail = await client.get(f"/api/v1/groups/{body['id']}", headers=_auth(owner))
    assert detail.json()["member_ids"] == [str(owner)]
    assert detail.json()["is_owner"] is True


async def test_create_group_on_inactive_edition_rejected(client, seed):
    s = await seed(active=False)
    res = await client.post(
        "/api/v1/groups",
        json={"name": "Office", "edition_id": str(s.edition_id)},
        headers=_auth(uuid4()),
    )
    assert res.status_code == 400


async def test_create_group_on_unknown_edition_is_404(client):
    res = await client.post(
        "/api/v1/groups",
        json={"name": "Office", "edition_id": str(uuid4())},
        headers=_auth(uuid4()),
    )
    assert res.status_code == 404


async def test_create_group_blank_name_rejected(client, seed):
    s = await seed()
    res = await client.post(
        "/api/v1/groups",
        json={"name": "   ", "edition_id": str(s.edition_id)},
        headers=_auth(uuid4()),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_list_groups_only_mine_with_member_counts(client, seed):
    mine = await seed(members=3)
    await seed(members=2)

    res = await client.get("/api/v1/groups", headers=_auth(mine.users[1]))

    assert res.status_code == 200
    groups = res.json()
    assert [g["id"] for g in groups] == [str(mine.group_id)]
    assert groups[0]["member_count"] == 3


async def test_non_member_cannot_read_group(client, seed):
    s = await seed()
    res = await client.get(f"/api/v1/groups/{s.group_id}", headers=_auth(uuid4()))
    assert res.status_code == 403


async def test_unknown_group_is_404(client):
    res = await client.get(f"/api/v1/groups/{uuid4()}", headers=_auth(uuid4()))
    assert res.status_code == 404


async def test_rename_owner_only(client, seed):
    s = await seed()

    res = await client.patch(
        f"/api/v1/groups/{s.group_id}", json={"name": "Nope"}, headers=_auth(s.users[1]),
    )
    assert res.status_code == 403

    res = await client.patch(
        f"/api/v1/groups/{s.group_id}", json={"name": "Renamed"}, headers=_auth(s.users[0]),
    )
    assert res.status_code == 200
    assert res.json()["name"] == "Renamed"
    assert res.json()["member_count"] == 3


async def test_join_is_idempotent(client, seed):
    s = await seed()
    newcomer = uuid4()

    first = await client.post(f"/api/v1/groups/{s.group_id}/join", headers=_auth(newcomer))
    second = await client.post(f"/api/v1/groups/{s.group_id}/join", headers=_auth(newcomer))

    assert first.json()["joined"] is True
    assert second.json()["joined"] is False
    detail = await client.get(f"/api/v1/groups/{s.group_id}", headers=_auth(newcomer))
    assert detail.json()["member_count"] == 4


async def test_join_unknown_group_is_404(client):
    res = await client.post(f"/api/v1/groups/{uuid4()}/join", headers=_auth(uuid4()))
    assert res.status_code == 404


async def test_member_leaves(client, seed):
    s = await seed()
    res = await client.post(f"/api/v1/groups/{s.group_id}/leave", headers=_auth(s.users[2]))
    assert res.status_code == 204

    res = await client.get(f"/api/v1/groups/{s.group_id}", headers=_auth(s.users[2]))
    assert res.status_code == 403


async def test_owner_cannot_leave(client, seed):
    s = await seed()
    res = await client.post(f"/api/v1/groups/{s.group_id}/leave", headers=_auth(s.users[0]))
    assert res.status_code == 400


async def test_kick_rules(client, seed):
    s = await seed()
    owner, member, other = s.users

    res = await client.delete(
        f"/api/v1/groups/{s.group_id}/members/{other}", headers=_auth(member),
    )
    assert res.status_code == 403

    res = await client.delete(
        f"/api/v1/groups/{s.group_id}/members/{owner}", headers=_auth(owner),
    )
    assert res.status_code == 400

    res = await client.delete(
        f"/api/v1/groups/{s.group_id}/members/{other}", headers=_auth(owner),
    )
    assert res.status_code == 204

    res = await client.delete(
        f"/api/v1/groups/{s.group_id}/members/{other}", headers=_auth(owner),
    )
    assert res.status_code == 404


async def test_delete_group_cascades(client, seed, test_session_factory):
    s = await seed(members=2)
    owner, member = s.users
    opened = await client.post(f"/api/v1/groups/{s.group_id}/rounds", headers=_auth(owner))
    round_id = opened.json()["id"]
    await client.post(
        f"/api/v1/rounds/{round_id}/comments", json={"text": "ha"}, headers=_auth(member),
    )
    await client.post(
        f"/api/v1/rounds/{round_id}/votes",
        json={"target_user_id": str(member)}, headers=_auth(owner),
    )
    await client.post(
        f"/api/v1/rounds/{round_id}/votes",
        json={"target_user_id": str(owner)}, headers=_auth(member),
    )

    res = await client.delete(f"/api/v1/groups/{s.group_id}", headers=_auth(member))
    assert res.status_code == 403

    res = await client.delete(f"/api/v1/groups/{s.group_id}", headers=_auth(owner))
    assert res.status_code == 204

    res = await client.get(f"/api/v1/groups/{s.group_id}", headers=_auth(owner))
    assert res.status_code == 404

    async with test_session_factory() as db:
        for model in (Round, Points, UsedStatement, GroupMember):
            count = await db.execute(
                select(func.count()).select_from(model).where(model.group_id == s.group_id),
            )
            assert count.scalar_one() == 0, model.__name__
        for model in (Vote, RoundResult, Comment):
            count = await db.execute(select(func.count()).select_from(model))
            assert count.scalar_one() == 0, model.__name__


async def test_leave_closes_round_once_remaining_members_voted(client, seed, dispatcher):
    s = await seed()
    owner, member, other = s.users
    opened = await client.post(f"/api/v1/groups/{s.group_id}/rounds", headers=_auth(owner))
    url = f"/api/v1/rounds/{opened.json()['id']}/votes"
    await client.post(url, json={"target_user_id": str(member)}, headers=_auth(owner))
    await client.post(url, json={"target_user_id": str(owner)}, headers=_auth(member))

    res = await client.post(f"/api/v1/groups/{s.group_id}/leave", headers=_auth(other))
    assert res.status_code == 204

    active = await client.get(f"/api/v1/groups/{s.group_id}/rounds/active", headers=_auth(owner))
    assert active.json()["round"] is None
    assert [p["event"] for p in dispatcher.payloads()] == ["round_opened", "round_closed"]


async def test_kick_leaves_round_open_while_ballots_missing(client, seed):
    s = await seed(members=4)
    owner, member, other, fourth = s.users
    opened = await client.post(f"/api/v1/groups/{s.group_id}/rounds", headers=_auth(owner))
    url = f"/api/v1/rounds/{opened.json()['id']}/votes"
    await client.post(url, json={"target_user_id": str(member)}, headers=_auth(owner))

    res = await client.delete(
        f"/api/v1/groups/{s.group_id}/members/{fourth}", headers=_auth(owner),
    )
    assert res.status_code == 204

    active = await client.get(f"/api/v1/groups/{s.group_id}/rounds/active", headers=_auth(owner))
    assert active.json()["round"] is not None
    assert active.json()["member_count"] == 3
