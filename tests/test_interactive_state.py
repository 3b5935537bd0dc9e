"""Tests for interactive tile state and enter/leave triggers."""

from gridbot.environment import InteractiveStateStore
from gridbot.schemas import Level, Position, StartPose, Tile, TileType


def _level() -> Level:
    return Level(
        id=4,
        title="interactive",
        grid_size=6,
        layout=[
            Tile(x=0, y=0),
            Tile(x=1, y=0, type=TileType.SWITCH, target_id="door_A"),
            Tile(x=2, y=0, type=TileType.DOOR, id="door_A", state=False),
            Tile(x=3, y=0, type=TileType.CRACKED, id="crack", state=True),
            Tile(x=4, y=0, type=TileType.TELEPORT, id="tp_in", target_id="tp_out"),
            Tile(x=5, y=5, type=TileType.TELEPORT, id="tp_out", target_id="tp_in"),
            Tile(x=0, y=1, type=TileType.SWITCH, target_id="unset"),
            Tile(x=1, y=1, type=TileType.TELEPORT, id="dangling", target_id="nowhere"),
            Tile(x=2, y=1, id="marker"),
        ],
        start=StartPose(x=0, y=0, dir="E"),
        goals=[],
        max_commands=10,
    )


def test_initialize_tracks_declared_states_only():
    store = InteractiveStateStore()
    store.initialize(_level())

    assert store.snapshot() == {"door_A": False, "crack": True}
    assert store.get("marker") is None


def test_initialize_discards_previous_state():
    store = InteractiveStateStore()
    store.initialize(_level())
    store.set("door_A", True)
    store.set("extra", True)

    store.initialize(_level())
    assert store.snapshot() == {"door_A": False, "crack": True}


def test_initialize_without_level_is_empty():
    store = InteractiveStateStore()
    store.initialize(None)
    assert store.snapshot() == {}
    assert store.handle_enter(Position(x=1, y=0)) is None


def test_snapshot_is_a_copy():
    store = InteractiveStateStore()
    store.initialize(_level())
    snapshot = store.snapshot()
    snapshot["door_A"] = True
    assert store.get("door_A") is False


def test_switch_toggles_target_and_twice_restores():
    store = InteractiveStateStore()
    store.initialize(_level())

    assert store.handle_enter(Position(x=1, y=0)) is None
    assert store.get("door_A") is True
    store.handle_enter(Position(x=1, y=0))
    assert store.get("door_A") is False


def test_switch_on_unset_target_defaults_to_false_first():
    store = InteractiveStateStore()
    store.initialize(_level())

    store.handle_enter(Position(x=0, y=1))
    assert store.get("unset") is True


def test_teleport_returns_destination_position():
    store = InteractiveStateStore()
    store.initialize(_level())

    assert store.handle_enter(Position(x=4, y=0)) == Position(x=5, y=5)
    # A teleport whose target id names no tile does nothing.
    assert store.handle_enter(Position(x=1, y=1)) is None


def test_leaving_cracked_tile_always_breaks_it():
    store = InteractiveStateStore()
    store.initialize(_level())

    store.handle_leave(Position(x=3, y=0))
    assert store.get("crack") is False
    store.handle_leave(Position(x=3, y=0))
    assert store.get("crack") is False


def test_other_tiles_have_no_leave_trigger():
    store = InteractiveStateStore()
    store.initialize(_level())
    before = store.snapshot()

    store.handle_leave(Position(x=1, y=0))
    store.handle_leave(Position(x=2, y=0))
    store.handle_leave(Position(x=9, y=9))
    assert store.snapshot() == before
