from app.api.form import validate_submission

FIELDS = [
    {"id": "f1", "type": "text", "label": "Name", "name": "name", "required": True, "order": 0,
     "validation": {"min_length": 2}},
    {"id": "f2", "type": "email", "label": "Email", "name": "email", "required": True, "order": 1},
    {"id": "f3", "type": "select", "label": "Topic", "name": "topic", "options": ["sales", "support"], "order": 2},
    {"id": "f4", "type": "number", "label": "Age", "name": "age", "order": 3},
]


def test_valid_submission_is_cleaned():
    clean, errors = validate_submission(
        FIELDS, {"name": "Jane", "email": "Jane@Example.com", "topic": "sales", "age": "30", "extra": "x"}
    )
    assert errors == {}
    assert clean["email"] == "jane@example.com"
    assert clean["age"] == 30.0
    assert "extra" not in clean


def test_required_fields():
    _, errors = validate_submission(FIELDS, {"name": "  "})
    assert errors == {"name": "Name is required", "email": "Email is required"}


def test_invalid_values():
    _, errors = validate_submission(
        FIELDS, {"name": "J", "email": "not-an-email", "topic": "other", "age": "old"}
    )
    assert set(errors) == {"name", "email", "topic", "age"}
    assert errors["topic"] == "Topic has an invalid option"
