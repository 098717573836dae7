"""
Health check - verify the package and its public pieces import.
"""


def test_import_mealboard():
    import mealboard

    assert mealboard.__version__ == "1.0.0"


def test_import_core_components():
    from mealboard.controller import MutationController
    from mealboard.engine import ReconciliationEngine
    from mealboard.store import ReservationStore

    assert MutationController is not None
    assert ReconciliationEngine is not None
    assert ReservationStore is not None


def test_slot_values_match_stored_meal_types():
    from mealboard.schedule import SLOTS, Slot

    assert [s.value for s in SLOTS] == ["早", "中", "晚"]
    assert Slot.MORNING.value == "早"


def test_cli_app_registers_commands():
    from mealboard.main import app

    names = {cmd.name or cmd.callback.__name__ for cmd in app.registered_commands}
    assert {"show", "toggle", "add", "headcount", "rename", "edit", "delete", "health", "version"} <= names
