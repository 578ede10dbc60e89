"""Tests for per-game lock registry."""

import asyncio

from game.session.locks import GameLockRegistry


class TestGameLockRegistry:
    def test_same_game_same_lock(self):
        locks = GameLockRegistry()
        assert locks.lock_for("g1") is locks.lock_for("g1")
        assert len(locks) == 1

    def test_different_games_different_locks(self):
        locks = GameLockRegistry()
        assert locks.lock_for("g1") is not locks.lock_for("g2")
        assert locks.game_ids() == {"g1", "g2"}

    async def test_hold_serializes_same_game(self):
        locks = GameLockRegistry()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("g1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

    async def test_different_games_do_not_block(self):
        locks = GameLockRegistry()
        async with locks.hold("g1"):
            async with asyncio.timeout(1):
                async with locks.hold("g2"):
                    assert locks.lock_for("g1").locked()
                    assert locks.lock_for("g2").locked()

    def test_prune_drops_dead_games(self):
        locks = GameLockRegistry()
        locks.lock_for("alive")
        locks.lock_for("dead")

        removed = locks.prune({"alive"})

        assert removed == 1
        assert locks.game_ids() == {"alive"}

    async def test_prune_keeps_held_locks(self):
        locks = GameLockRegistry()
        async with locks.hold("busy"):
            assert locks.prune(set()) == 0
        assert locks.prune(set()) == 1
        assert len(locks) == 0
