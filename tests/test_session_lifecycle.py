import uuid
from datetime import timedelta

import pytest

from idp_sessions.errors import ValidationError
from idp_sessions.schemas.session import SessionRead
from idp_sessions.use_cases.sessions.list_sessions import list_sessions, paginate_sessions
from idp_sessions.use_cases.sessions.revoke_all_sessions import revoke_all_sessions
from idp_sessions.use_cases.sessions.revoke_session import revoke_session
from idp_sessions.use_cases.sessions.start_session import start_session
from idp_sessions.utils.security import hash_refresh_token
from tests.session_helpers import (
    NOW,
    FakeApplication,
    FakeApplicationDirectory,
    FakeAuthorization,
    FakeAuthorizationStore,
    FakeSessionPort,
    FakeTokenStore,
    FixedClock,
    make_session,
)


@pytest.mark.anyio
async def test_list_sessions_maps_application_and_nearest_expiry() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id), application_id="app-1"),
        FakeAuthorization(
            id="auth-2", subject=str(user_id), application_id="app-2", status="revoked"
        ),
        FakeAuthorization(id="auth-3", subject=str(uuid.uuid4())),
    )
    directory = FakeApplicationDirectory(
        applications={"app-1": FakeApplication("app-1", "spa", "Single Page App")}
    )
    token_store = FakeTokenStore(
        expirations={
            "auth-1": [NOW + timedelta(hours=2), NOW + timedelta(minutes=15)],
        }
    )

    sessions = await list_sessions(authorization_store, directory, token_store, user_id)

    assert [session.authorization_id for session in sessions] == ["auth-1", "auth-2"]
    first, second = sessions
    assert first.client_id == "spa"
    assert first.client_display_name == "Single Page App"
    assert first.expires_at == NOW + timedelta(minutes=15)
    assert first.status == "valid"
    assert first.created_at == NOW
    assert second.client_id is None
    assert second.expires_at is None
    assert second.status == "revoked"
    assert authorization_store.subject_queries == [(str(user_id), None)]
    assert set(token_store.status_queries) == {"valid"}


@pytest.mark.anyio
async def test_list_sessions_normalises_null_id_and_tolerates_directory_errors() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id=None, subject=str(user_id), application_id="app-1")
    )
    directory = FakeApplicationDirectory(fail_ids={"app-1"})

    sessions = await list_sessions(
        authorization_store, directory, FakeTokenStore(), user_id
    )

    assert len(sessions) == 1
    assert sessions[0].authorization_id == ""
    assert sessions[0].client_id is None


@pytest.mark.anyio
async def test_list_sessions_survives_token_store_failure() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id)),
        FakeAuthorization(id="auth-2", subject=str(user_id)),
    )
    token_store = FakeTokenStore(
        expirations={"auth-2": [NOW + timedelta(minutes=5)]}
    )
    token_store.fail_expirations_for.add("auth-1")

    sessions = await list_sessions(
        authorization_store, FakeApplicationDirectory(), token_store, user_id
    )

    assert [session.authorization_id for session in sessions] == ["auth-1", "auth-2"]
    assert sessions[0].expires_at is None
    assert sessions[1].expires_at == NOW + timedelta(minutes=5)


def test_paginate_sessions_clamps_out_of_range_pages() -> None:
    sessions = [SessionRead(authorization_id=f"auth-{i}") for i in range(25)]

    last = paginate_sessions(sessions, page=9, page_size=10)
    assert last.page == 3
    assert last.pages == 3
    assert [item.authorization_id for item in last.items] == [
        f"auth-{i}" for i in range(20, 25)
    ]

    first = paginate_sessions(sessions, page=0, page_size=0)
    assert first.page == 1
    assert first.page_size == 10
    assert first.total == 25

    empty = paginate_sessions([], page=3, page_size=10)
    assert empty.page == 1
    assert empty.pages == 1
    assert empty.items == []


@pytest.mark.anyio
async def test_revoke_session_ownership_is_case_insensitive() -> None:
    user_id = uuid.uuid4()
    authorization = FakeAuthorization(id="auth-1", subject=str(user_id).upper())
    authorization_store = FakeAuthorizationStore(authorization)
    token_store = FakeTokenStore()

    revoked = await revoke_session(authorization_store, token_store, user_id, "auth-1")

    assert revoked is True
    assert authorization.status == "revoked"
    assert token_store.revoked_for == ["auth-1"]


@pytest.mark.anyio
async def test_revoke_session_refuses_other_users_authorization() -> None:
    owner = uuid.uuid4()
    intruder = uuid.uuid4()
    authorization = FakeAuthorization(id="auth-1", subject=str(owner))
    authorization_store = FakeAuthorizationStore(authorization)
    token_store = FakeTokenStore()

    revoked = await revoke_session(authorization_store, token_store, intruder, "auth-1")

    assert revoked is False
    assert authorization.status == "valid"
    assert authorization_store.revoked_ids == []
    assert token_store.revoked_for == []


@pytest.mark.anyio
async def test_revoke_session_missing_authorization_returns_false() -> None:
    revoked = await revoke_session(
        FakeAuthorizationStore(), FakeTokenStore(), uuid.uuid4(), "missing"
    )

    assert revoked is False


@pytest.mark.anyio
async def test_revoke_session_store_refusal_returns_false() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id))
    )
    authorization_store.refuse_ids.add("auth-1")
    token_store = FakeTokenStore()

    revoked = await revoke_session(authorization_store, token_store, user_id, "auth-1")

    assert revoked is False
    assert token_store.revoked_for == []


@pytest.mark.anyio
async def test_revoke_session_survives_token_store_failure() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id))
    )
    token_store = FakeTokenStore()
    token_store.fail = True

    revoked = await revoke_session(authorization_store, token_store, user_id, "auth-1")

    assert revoked is True


@pytest.mark.anyio
async def test_revoke_session_tombstones_local_session() -> None:
    user_id = uuid.uuid4()
    port = FakeSessionPort(make_session(user_id))
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id))
    )

    revoked = await revoke_session(
        authorization_store,
        FakeTokenStore(),
        user_id,
        "auth-1",
        session_port=port,
        clock=FixedClock(),
    )

    assert revoked is True
    assert port.row(user_id).revoked_utc == NOW
    assert port.row(user_id).revocation_reason == "revoked_by_user"


@pytest.mark.anyio
async def test_revoke_all_counts_only_successes() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id)),
        FakeAuthorization(id="auth-2", subject=str(user_id)),
        FakeAuthorization(id="auth-3", subject=str(user_id)),
    )
    authorization_store.fail_ids.add("auth-2")
    token_store = FakeTokenStore()

    revoked = await revoke_all_sessions(authorization_store, token_store, user_id)

    assert revoked == 2
    assert authorization_store.revoked_ids == ["auth-1", "auth-3"]
    assert token_store.revoked_for == ["auth-1", "auth-3"]


@pytest.mark.anyio
async def test_revoke_all_excludes_refused_revocations() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id)),
        FakeAuthorization(id="auth-2", subject=str(user_id)),
    )
    authorization_store.refuse_ids.add("auth-1")

    revoked = await revoke_all_sessions(authorization_store, FakeTokenStore(), user_id)

    assert revoked == 1


@pytest.mark.anyio
async def test_revoke_all_falls_back_to_unfiltered_query() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id), status=None),
    )

    revoked = await revoke_all_sessions(authorization_store, FakeTokenStore(), user_id)

    assert revoked == 1
    assert authorization_store.subject_queries == [
        (str(user_id), "valid"),
        (str(user_id), None),
    ]


@pytest.mark.anyio
async def test_revoke_all_with_nothing_to_revoke_returns_zero() -> None:
    revoked = await revoke_all_sessions(
        FakeAuthorizationStore(), FakeTokenStore(), uuid.uuid4()
    )

    assert revoked == 0


@pytest.mark.anyio
async def test_revoke_all_propagates_store_outage() -> None:
    user_id = uuid.uuid4()
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id)),
    )
    authorization_store.fail_on_find = True
    token_store = FakeTokenStore()

    with pytest.raises(RuntimeError, match="authorization store unavailable"):
        await revoke_all_sessions(authorization_store, token_store, user_id)

    assert authorization_store.revoked_ids == []
    assert token_store.revoked_for == []


@pytest.mark.anyio
async def test_revoke_all_tombstones_local_sessions() -> None:
    user_id = uuid.uuid4()
    port = FakeSessionPort(
        make_session(user_id, "auth-1"), make_session(user_id, "auth-2")
    )
    authorization_store = FakeAuthorizationStore(
        FakeAuthorization(id="auth-1", subject=str(user_id)),
        FakeAuthorization(id="auth-2", subject=str(user_id)),
    )

    revoked = await revoke_all_sessions(
        authorization_store,
        FakeTokenStore(),
        user_id,
        session_port=port,
        clock=FixedClock(),
    )

    assert revoked == 2
    assert port.row(user_id, "auth-1").revoked_utc == NOW
    assert port.row(user_id, "auth-2").revoked_utc == NOW


@pytest.mark.anyio
async def test_start_session_stores_hash_and_deadlines() -> None:
    user_id = uuid.uuid4()
    port = FakeSessionPort()

    started = await start_session(
        port,
        user_id,
        "auth-1",
        clock=FixedClock(),
        client_id="spa",
        client_ip="203.0.113.7",
    )

    row = port.row(user_id)
    assert row.current_refresh_token_hash == hash_refresh_token(started.refresh_token)
    assert row.previous_refresh_token_hash is None
    assert row.absolute_expires_utc == NOW + timedelta(hours=8)
    assert row.sliding_expires_utc == NOW + timedelta(minutes=30)
    assert started.session.client_id == "spa"
    assert started.refresh_token not in repr(started)
    assert port.commits == 1


@pytest.mark.anyio
async def test_start_session_rejects_blank_authorization_id() -> None:
    with pytest.raises(ValidationError):
        await start_session(FakeSessionPort(), uuid.uuid4(), "  ", clock=FixedClock())
