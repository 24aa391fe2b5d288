import pytest
from flatdb.engine.value_validator import (
    validate_value, coerce_value, coerce_lookup_value, is_legacy_int, validate_column_type,
)
from flatdb.engine.errors import (
    EmptyValueError, ReservedCharacterError, TypeMismatchError, InvalidColumnTypeError,
)
from flatdb.storage.schema_store import ColumnType


@pytest.mark.parametrize("value", ["42", "0", "-7", "007"])
def test_valid_integers(value):
    validate_value(value, ColumnType.INT)


@pytest.mark.parametrize("value", ["abc", "4.2", "--5", "-", "1 2", "+3"])
def test_invalid_integers(value):
    with pytest.raises(TypeMismatchError):
        validate_value(value, ColumnType.INT)


def test_empty_value():
    for column_type in ColumnType:
        with pytest.raises(EmptyValueError):
            validate_value("", column_type)


def test_separator_rejected_for_every_type():
    with pytest.raises(ReservedCharacterError):
        validate_value("a:b", ColumnType.STRING)
    with pytest.raises(ReservedCharacterError):
        validate_value("1:2", ColumnType.INT)


def test_newline_rejected():
    with pytest.raises(ReservedCharacterError):
        validate_value("two\nlines", ColumnType.STRING)


def test_string_accepts_anything_else():
    validate_value("Hello, World! 123 -- ok", ColumnType.STRING)


def test_error_names_column():
    with pytest.raises(TypeMismatchError) as exc:
        validate_value("x", ColumnType.INT, "age")
    assert "age" in exc.value.message
    assert "'x'" in exc.value.message


def test_coerce_value():
    assert coerce_value("-12", ColumnType.INT) == -12
    assert coerce_value("007", ColumnType.INT) == 7
    assert coerce_value("007", ColumnType.STRING) == "007"


def test_validate_column_type():
    assert validate_column_type("Int") is ColumnType.INT
    with pytest.raises(InvalidColumnTypeError):
        validate_column_type("varchar")


def test_lookup_accepts_legacy_integer_text():
    assert coerce_lookup_value("--5", ColumnType.INT) == "--5"
    assert coerce_lookup_value("-5", ColumnType.INT) == -5
    assert is_legacy_int("--5")
    assert not is_legacy_int("-5")
    with pytest.raises(TypeMismatchError):
        coerce_lookup_value("abc", ColumnType.INT)
    with pytest.raises(TypeMismatchError):
        coerce_lookup_value("-", ColumnType.INT)
