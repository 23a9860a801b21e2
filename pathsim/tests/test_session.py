import asyncio
import json

import pytest

from pathsim.session import SimulationSession
from pathsim.sim.engine import SimulationEngine
from pathsim.sim.entities import Node, Task
from pathsim.sim.motion import MotionParams
from pathsim.sim.nodes import NodeResolver
from pathsim.ws import WSManager


class _FakeWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.sent: list[str] = []
        self.fail = fail

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)


def _engine() -> SimulationEngine:
    resolver = NodeResolver(
        [
            Node(id="s1", x=0.0, y=0.0, kind="station"),
            Node(id="n1", x=2.0, y=0.0, kind="navigation"),
        ]
    )
    engine = SimulationEngine(
        resolver=resolver,
        plans={"robot_1": [Task(kind="transit", path=("s1", "n1"))]},
        start_positions={"robot_1": (0.0, 0.0)},
        motion=MotionParams(max_speed=5.0, acceleration=3.0),
    )
    engine.set_speed_multiplier(4)
    return engine


def test_session_requires_positive_tick_rate():
    with pytest.raises(ValueError):
        SimulationSession(WSManager(), tick_hz=0)


def test_controls_need_a_loaded_engine():
    session = SimulationSession(WSManager(), tick_hz=100)
    with pytest.raises(LookupError):
        session.require_engine()


def test_pause_freezes_the_tick_count():
    async def scenario() -> None:
        session = SimulationSession(WSManager(), tick_hz=200)
        await session.load(_engine())
        await session.play()
        await asyncio.sleep(0.05)
        snapshot = await session.pause()
        ticks = session.engine.state.tick
        await asyncio.sleep(0.05)

        assert not snapshot.playing
        assert ticks > 0
        assert session.engine.state.tick == ticks
        await session.reset()

    asyncio.run(scenario())


def test_reset_cancels_the_loop():
    async def scenario() -> None:
        session = SimulationSession(WSManager(), tick_hz=200)
        await session.load(_engine())
        await session.play()
        await asyncio.sleep(0.03)
        snapshot = await session.reset()
        await asyncio.sleep(0.03)

        assert snapshot.tick == 0
        assert not snapshot.playing
        assert session.engine.state.tick == 0
        assert session.engine.snapshot().robot("robot_1").position == (0.0, 0.0)

    asyncio.run(scenario())


def test_loop_stops_at_terminal_and_play_restarts():
    async def scenario() -> None:
        manager = WSManager()
        session = SimulationSession(manager, tick_hz=200)
        await session.load(_engine())
        await session.play()

        async def until_paused() -> None:
            while session.engine.playing:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(until_paused(), timeout=5.0)
        assert session.engine.is_terminal()
        assert manager.latest["terminal"] is True
        assert manager.latest["progress"] == 1.0

        restarted = await session.play()
        assert restarted.playing
        assert not restarted.terminal
        await session.reset()

    asyncio.run(scenario())


def test_ws_manager_replays_latest_and_drops_stale_clients():
    async def scenario() -> None:
        manager = WSManager()
        await manager.broadcast({"tick": 1})

        client = _FakeWebSocket()
        await manager.connect(client)
        assert client.accepted
        assert json.loads(client.sent[0]) == {"event_type": "snapshot.tick", "snapshot": {"tick": 1}}

        stale = _FakeWebSocket()
        await manager.connect(stale)
        stale.fail = True
        await manager.broadcast({"tick": 2})

        assert json.loads(client.sent[-1])["snapshot"] == {"tick": 2}
        assert stale not in manager.clients
        assert client in manager.clients

    asyncio.run(scenario())
