import os
import pytest
from flatdb.engine.table_engine import TableEngine, parse_projection
from flatdb.engine.column_builder import ColumnSpecBuilder
from flatdb.engine.errors import (
    AlreadyExistsError, DuplicateKeyError, EmptyValueError, InvalidColumnCountError,
    InvalidColumnIndexError, InvalidColumnTypeError, InvalidNameError, NotFoundError,
    ReservedCharacterError, TypeMismatchError,
)


@pytest.fixture
def engine(tmp_path):
    return TableEngine(str(tmp_path))


@pytest.fixture
def users(engine):
    engine.create_table('users', [('id', 'int'), ('name', 'string')])
    return engine


def read_data(engine, table):
    with open(engine.schema_store.data_path(table)) as f:
        return f.read()


# --- 建表 / 列表 / 删表 ---

def test_create_table_persists_schema_and_empty_data(engine, tmp_path):
    schema = engine.create_table('users', [('id', 'INT'), ('name', 'String')])
    assert schema.column_names == ['id', 'name']
    assert (tmp_path / 'users.meta').read_text() == 'id:int:pk\nname:string:\n'
    assert (tmp_path / 'users.data').read_text() == ''
    assert engine.row_count('users') == 0
    assert engine.is_empty('users')


def test_create_table_from_builder(engine):
    builder = ColumnSpecBuilder(2)
    builder.add('code', 'string')
    builder.add('qty', 'int')
    schema = engine.create_table('items', builder)
    assert schema.primary_key_column().name == 'code'


def test_create_table_errors(users):
    with pytest.raises(AlreadyExistsError):
        users.create_table('users', [('id', 'int')])
    with pytest.raises(InvalidNameError):
        users.create_table('9lives', [('id', 'int')])
    with pytest.raises(InvalidColumnCountError):
        users.create_table('empty', [])
    with pytest.raises(InvalidColumnTypeError):
        users.create_table('bad', [('id', 'float')])
    with pytest.raises(AlreadyExistsError):
        users.create_table('dup', [('id', 'int'), ('id', 'string')])
    with pytest.raises(InvalidColumnCountError):
        users.create_table('partial', ColumnSpecBuilder(2))
    assert users.list_tables() == ['users']


def test_list_and_drop_table(users, tmp_path):
    users.create_table('orders', [('oid', 'int')])
    assert users.list_tables() == ['orders', 'users']
    users.drop_table('orders')
    assert users.list_tables() == ['users']
    assert not (tmp_path / 'orders.meta').exists()
    assert not (tmp_path / 'orders.data').exists()
    with pytest.raises(NotFoundError):
        users.drop_table('orders')


def test_describe_missing_table(engine):
    with pytest.raises(NotFoundError):
        engine.describe_table('ghost')
    with pytest.raises(NotFoundError):
        engine.insert_row('ghost', ['1'])


# --- 插入 ---

def test_insert_row(users):
    row = users.insert_row('users', ['1', 'Alice'])
    assert row == (1, 'Alice')
    assert read_data(users, 'users') == '1:Alice\n'


def test_insert_normalizes_integer_text(users):
    users.insert_row('users', ['007', 'Bond'])
    assert read_data(users, 'users') == '7:Bond\n'
    with pytest.raises(DuplicateKeyError):
        users.insert_row('users', ['7', 'James'])


def test_insert_duplicate_key_leaves_file_unchanged(users):
    users.insert_row('users', ['1', 'Alice'])
    before = read_data(users, 'users')
    with pytest.raises(DuplicateKeyError):
        users.insert_row('users', ['1', 'Bob'])
    assert read_data(users, 'users') == before


@pytest.mark.parametrize("values,error", [
    (['abc', 'Alice'], TypeMismatchError),
    (['', 'Alice'], EmptyValueError),
    (['1', ''], EmptyValueError),
    (['1', 'Al:ice'], ReservedCharacterError),
    (['1:2', 'Alice'], ReservedCharacterError),
    (['1'], InvalidColumnCountError),
    (['1', 'a', 'b'], InvalidColumnCountError),
])
def test_insert_validation_writes_nothing(users, values, error):
    with pytest.raises(error):
        users.insert_row('users', values)
    assert read_data(users, 'users') == ''


def test_string_primary_key(engine):
    engine.create_table('tags', [('tag', 'string'), ('hits', 'int')])
    engine.insert_row('tags', ['007', '1'])
    engine.insert_row('tags', ['7', '2'])
    assert engine.select('tags').rows == [('007', 1), ('7', 2)]


# --- 查询 ---

def test_select_all(users):
    users.insert_row('users', ['2', 'Bob'])
    users.insert_row('users', ['1', 'Alice'])
    result = users.select('users')
    assert result.headers == ['id', 'name']
    assert result.rows == [(2, 'Bob'), (1, 'Alice')]
    assert result.row_count == 2


def test_select_projection_repeats_and_reorders(users):
    users.insert_row('users', ['1', 'Alice'])
    users.insert_row('users', ['2', 'Bob'])
    result = users.select('users', [1, 1, 2])
    assert result.headers == ['id', 'id', 'name']
    assert result.rows == [(1, 1, 'Alice'), (2, 2, 'Bob')]
    assert users.select('users', [2, 1]).rows == [('Alice', 1), ('Bob', 2)]


@pytest.mark.parametrize("projection", [[0], [3], [1, 5], []])
def test_select_invalid_projection(users, projection):
    with pytest.raises(InvalidColumnIndexError):
        users.select('users', projection)


def test_every_selected_row_matches_arity(engine):
    engine.create_table('wide', [('a', 'int'), ('b', 'string'), ('c', 'int'), ('d', 'string')])
    for i in range(5):
        engine.insert_row('wide', [str(i), f'b{i}', str(i * 10), f'd{i}'])
    for row in engine.select('wide').rows:
        assert len(row) == 4


def test_parse_projection():
    assert parse_projection('1,3') == [1, 3]
    assert parse_projection(' 2 1, 2 ') == [2, 1, 2]
    for bad in ('', 'a', '1,-2', '1.5'):
        with pytest.raises(InvalidColumnIndexError):
            parse_projection(bad)


# --- 更新 ---

def test_update_cell(users):
    users.insert_row('users', ['1', 'Alice'])
    users.insert_row('users', ['2', 'Bob'])
    update = users.update_cell('users', '1', 2, 'Alicia')
    assert update.old_value == 'Alice'
    assert update.new_value == 'Alicia'
    assert update.column_name == 'name'
    assert read_data(users, 'users') == '1:Alicia\n2:Bob\n'


def test_update_primary_key(users):
    users.insert_row('users', ['1', 'Alice'])
    users.insert_row('users', ['2', 'Bob'])
    users.update_cell('users', '2', 1, '5')
    assert users.select('users').rows == [(1, 'Alice'), (5, 'Bob')]
    assert users.find_row('users', '2') is None


def test_update_primary_key_to_itself_is_allowed(users):
    users.insert_row('users', ['1', 'Alice'])
    update = users.update_cell('users', '1', 1, '1')
    assert update.old_value == update.new_value == 1


def test_update_primary_key_collision(users):
    users.insert_row('users', ['1', 'Alice'])
    users.insert_row('users', ['2', 'Bob'])
    before = read_data(users, 'users')
    with pytest.raises(DuplicateKeyError):
        users.update_cell('users', '1', 1, '2')
    assert read_data(users, 'users') == before


def test_update_errors(users):
    users.insert_row('users', ['1', 'Alice'])
    with pytest.raises(NotFoundError):
        users.update_cell('users', '9', 2, 'X')
    with pytest.raises(InvalidColumnIndexError):
        users.update_cell('users', '1', 3, 'X')
    with pytest.raises(TypeMismatchError):
        users.update_cell('users', '1', 1, 'abc')
    with pytest.raises(ReservedCharacterError):
        users.update_cell('users', '1', 2, 'a:b')
    with pytest.raises(TypeMismatchError):
        users.update_cell('users', 'one', 2, 'X')
    assert read_data(users, 'users') == '1:Alice\n'


# --- 删除 ---

def test_delete_row_keeps_others_identical(users):
    for pk, name in [('1', 'Alice'), ('2', 'Bob'), ('3', 'Carol')]:
        users.insert_row('users', [pk, name])
    deleted = users.delete_row('users', '2')
    assert deleted.row == (2, 'Bob')
    assert deleted.headers == ['id', 'name']
    assert users.find_row('users', '2') is None
    assert read_data(users, 'users') == '1:Alice\n3:Carol\n'


def test_delete_missing_row(users):
    users.insert_row('users', ['1', 'Alice'])
    with pytest.raises(NotFoundError):
        users.delete_row('users', '2')
    assert users.row_count('users') == 1


# --- 端到端 ---

def test_end_to_end_users_scenario(engine):
    engine.create_table('users', [('id', 'int'), ('name', 'string')])
    engine.insert_row('users', ['1', 'Alice'])
    with pytest.raises(DuplicateKeyError):
        engine.insert_row('users', ['1', 'Bob'])
    assert engine.row_count('users') == 1
    engine.insert_row('users', ['2', 'Bob'])
    assert engine.row_count('users') == 2
    engine.update_cell('users', '1', 2, 'Alicia')
    assert engine.select('users').rows == [(1, 'Alicia'), (2, 'Bob')]
    engine.delete_row('users', '2')
    assert engine.row_count('users') == 1
    assert engine.select('users').rows == [(1, 'Alicia')]


def test_engines_on_same_directory_share_table_lock(tmp_path):
    e1 = TableEngine(str(tmp_path))
    e2 = TableEngine(os.path.join(str(tmp_path), '.'))
    assert e1.lock_manager is e2.lock_manager
    e1.create_table('t', [('id', 'int')])
    e2.insert_row('t', ['1'])
    assert e1.select('t').rows == [(1,)]


# --- 旧格式数据文件 ---

def write_data(engine, table, content):
    with open(engine.schema_store.data_path(table), 'w') as f:
        f.write(content)


def test_delete_touches_only_first_numerically_equal_key(users):
    write_data(users, 'users', '01:Alice\n1:Bob\n2:Carol\n')
    deleted = users.delete_row('users', '1')
    assert deleted.row == (1, 'Alice')
    assert read_data(users, 'users') == '1:Bob\n2:Carol\n'


def test_update_touches_only_first_numerically_equal_key(users):
    write_data(users, 'users', '01:Alice\n1:Bob\n')
    update = users.update_cell('users', '1', 2, 'Zed')
    assert update.old_value == 'Alice'
    assert read_data(users, 'users') == '1:Zed\n1:Bob\n'


def test_legacy_multi_minus_key_is_readable_and_deletable(users):
    write_data(users, 'users', '1:Alice\n--5:Bob\n')
    assert users.select('users').rows == [(1, 'Alice'), ('--5', 'Bob')]
    assert users.find_row('users', '--5') == ('--5', 'Bob')
    users.update_cell('users', '--5', 2, 'Robert')
    assert read_data(users, 'users') == '1:Alice\n--5:Robert\n'
    users.delete_row('users', '--5')
    assert read_data(users, 'users') == '1:Alice\n'


def test_legacy_integer_text_not_accepted_for_new_values(users):
    with pytest.raises(TypeMismatchError):
        users.insert_row('users', ['--5', 'Bob'])
    users.insert_row('users', ['1', 'Alice'])
    with pytest.raises(TypeMismatchError):
        users.update_cell('users', '1', 1, '--5')
    assert read_data(users, 'users') == '1:Alice\n'


@pytest.mark.parametrize("name", ['../other/users', 'users.meta', ''])
def test_table_name_validated_before_file_access(users, name):
    with pytest.raises(InvalidNameError):
        users.describe_table(name)
    with pytest.raises(InvalidNameError):
        users.drop_table(name)
    with pytest.raises(InvalidNameError):
        users.select(name)
