import pytest

from keeper.schema_loader import SCHEMAS, validate_data


def test_bundled_schemas_loaded():
    assert {"ws_envelope", "roll_event"} <= set(SCHEMAS)


def test_envelope_validation():
    assert validate_data({"type": "narration", "data": {"text": "..."}}, "ws_envelope") is True
    assert "'type' is a required property" in validate_data({"data": 1}, "ws_envelope")
    assert validate_data([], "ws_envelope") is not True


def test_roll_event_validation():
    roll = {"roll_type": "sanity", "dice_formula": "1d100", "result": 64}
    assert validate_data(roll, "roll_event") is True
    assert validate_data({**roll, "roll_type": "luck"}, "roll_event") is not True
    assert validate_data({**roll, "result": "64"}, "roll_event") is not True


def test_unknown_schema():
    with pytest.raises(ValueError):
        validate_data({}, "character_sheet")
