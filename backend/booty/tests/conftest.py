import pytest

from booty.logic.settings import GameSettings
from booty.messaging.router import MessageRouter
from booty.session.ai_turn import AIDelays, AITurnRunner
from booty.session.manager import SessionManager
from booty.session.registry import RoomRegistry
from booty.tests.helpers import ScriptedRng

NO_DELAYS = AIDelays(think=0, roll=0, target=0, end_turn=0)


@pytest.fixture
def rng(request):
    return ScriptedRng(reverse_seats=getattr(request, "param", False))


@pytest.fixture
def registry(rng):
    return RoomRegistry(settings=GameSettings(), rng=rng)


@pytest.fixture
async def manager(registry):
    session_manager = SessionManager(registry=registry, ai_runner=AITurnRunner(delays=NO_DELAYS))
    yield session_manager
    session_manager.cancel_all_ai_turns()


@pytest.fixture
def router(manager):
    return MessageRouter(manager)
