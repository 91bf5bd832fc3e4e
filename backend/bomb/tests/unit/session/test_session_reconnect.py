import logging

from bomb.logic.enums import GameAction
from bomb.session.manager import SessionManager
from bomb.tests.helpers.auth import TEST_TOKEN_SECRET, make_test_token
from bomb.tests.helpers.game import actor_page
from bomb.tests.helpers.session import connect_to_lobby, create_started_game, create_waiting_game, token_of
from bomb.tests.mocks import MockConnection
from shared.auth import seal_seat_token


class TestConnectRouting:
    async def test_no_token_goes_to_lobby(self, session_manager, mock_connection):
        await session_manager.connect(mock_connection, None)

        assert session_manager.lobby.is_member(mock_connection.connection_id)
        assert mock_connection.sent_messages == [{"key": "available_games", "games": []}]

    async def test_garbage_token_falls_back_to_lobby(self, session_manager, mock_connection):
        await session_manager.connect(mock_connection, "not-a-token")

        assert [m["key"] for m in mock_connection.sent_messages] == ["invalid_token", "available_games"]
        assert session_manager.lobby.is_member(mock_connection.connection_id)

    async def test_unusable_token_is_logged_redacted(self, session_manager, mock_connection, caplog):
        with caplog.at_level(logging.INFO):
            await session_manager.connect(mock_connection, "not-a-token-at-all")

        events = [r.msg for r in caplog.records if isinstance(r.msg, dict)]
        logged = next(e for e in events if e["event"] == "connection presented an unusable token")
        assert logged["token"] == "not-a-to..."

    async def test_token_signed_with_other_secret_rejected(self, session_manager):
        game_id, (amy, _ben) = await create_started_game(session_manager)
        player_id = session_manager.registry.seat_of(amy.connection_id).player_id
        forged = seal_seat_token(game_id, player_id, "other-secret")
        conn = MockConnection()

        await session_manager.connect(conn, forged)

        assert conn.sent_messages[0] == {"key": "invalid_token"}
        assert session_manager.registry.seat_of(conn.connection_id) is None

    async def test_token_for_unknown_game(self, session_manager, mock_connection):
        await session_manager.connect(mock_connection, make_test_token("gone", "p0"))

        assert mock_connection.sent_messages[0] == {"key": "invalid_token"}

    async def test_token_for_unknown_player(self, session_manager, mock_connection):
        game_id, _ = await create_waiting_game(session_manager)

        await session_manager.connect(mock_connection, make_test_token(game_id, "stranger"))

        assert mock_connection.sent_messages[0] == {"key": "invalid_token"}
        assert session_manager.lobby.is_member(mock_connection.connection_id)


class TestResumeSeat:
    async def test_reconnect_resumes_seat(self, session_manager):
        host = await connect_to_lobby(session_manager)
        await session_manager.create_game(host, "Amy")
        token = token_of(host)
        await session_manager.disconnect(host)
        conn = MockConnection()

        await session_manager.connect(conn, token)

        snapshot = conn.last_message("game_state")["game"]
        assert [(p["name"], p["connected"]) for p in snapshot["players"]] == [("Amy", True)]
        assert conn.last_message("invalid_token") is None
        assert not session_manager.lobby.is_member(conn.connection_id)

    async def test_disconnect_keeps_player_and_updates_others(self, session_manager):
        game_id, (amy, ben) = await create_started_game(session_manager)

        await session_manager.disconnect(ben)

        roster = amy.last_message("game_state")["game"]["players"]
        assert [p["connected"] for p in roster] == [True, False]
        assert len(session_manager.get_game(game_id).players) == 2

    async def test_reconnect_replaces_old_connection(self, session_manager):
        _game_id, (amy, ben) = await create_waiting_game(session_manager, joiners=["Ben"])
        token = token_of(ben)
        amy.clear()
        fresh = MockConnection()

        await session_manager.connect(fresh, token)

        assert ben.is_closed
        assert ben._close_reason == "replaced_by_reconnect"
        assert fresh.last_message("game_state") is not None
        assert amy.last_message("game_state") is not None
        assert session_manager.registry.seat_of(ben.connection_id) is None

    async def test_reconnected_player_can_act(self, session_manager):
        _game_id, (amy, ben) = await create_started_game(session_manager)
        token = token_of_seat(session_manager, amy)
        await session_manager.disconnect(amy)
        fresh = MockConnection()
        await session_manager.connect(fresh, token)

        await session_manager.handle_game_action(fresh, GameAction.PLAY_MOVE, {"page": actor_page()})

        assert [p["status"] for p in ben.last_message("game_state")["game"]["players"]] == ["none", "active"]

    async def test_player_who_left_cannot_return(self, session_manager):
        game_id, (amy, ben, _cat) = await create_started_game(session_manager, ["Amy", "Ben", "Cat"])
        token = token_of_seat(session_manager, ben)
        await session_manager.handle_game_action(ben, GameAction.LEAVE_GAME, {})
        conn = MockConnection()

        await session_manager.connect(conn, token)

        assert conn.sent_messages[0] == {"key": "invalid_token"}
        assert session_manager.get_game(game_id) is not None
        assert amy.last_message("game_state") is not None


class TestCacheReadThrough:
    async def test_restart_restores_active_game(self, session_manager, cache):
        game_id, (amy, _ben) = await create_started_game(session_manager)
        await session_manager.handle_game_action(amy, GameAction.PLAY_MOVE, {"page": actor_page()})
        token = token_of_seat(session_manager, amy)

        restarted = SessionManager(token_secret=TEST_TOKEN_SECRET, cache=cache)
        conn = MockConnection()
        await restarted.connect(conn, token)

        game = restarted.get_game(game_id)
        assert game is not None
        assert game.current_round == [actor_page()]
        snapshot = conn.last_message("game_state")["game"]
        assert [p["status"] for p in snapshot["players"]] == ["none", "active"]
        assert [p["connected"] for p in snapshot["players"]] == [True, False]

    async def test_waiting_game_is_not_cached(self, session_manager, cache):
        _game_id, (host,) = await create_waiting_game(session_manager)

        restarted = SessionManager(token_secret=TEST_TOKEN_SECRET, cache=cache)
        conn = MockConnection()
        await restarted.connect(conn, token_of(host))

        assert conn.sent_messages[0] == {"key": "invalid_token"}

    async def test_unreadable_record_is_a_miss(self, cache):
        cache.records["broken"] = b"\xc1"
        manager = SessionManager(token_secret=TEST_TOKEN_SECRET, cache=cache)
        conn = MockConnection()

        await manager.connect(conn, make_test_token("broken", "p0"))

        assert conn.sent_messages[0] == {"key": "invalid_token"}
        assert manager.get_game("broken") is None


def token_of_seat(manager, conn):
    """Mint a fresh token for the seat a connection currently holds."""
    seat = manager.registry.seat_of(conn.connection_id)
    return make_test_token(seat.game_id, seat.player_id)
