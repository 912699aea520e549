"""
Statement Testing
Tests for parameter binding, execution and the fetch modes of prepared statements
"""

from types import SimpleNamespace

import pytest

from sqlseam.core.exceptions import StatementError
from sqlseam.db import Attribute, CaseMode, FetchMode, ParamType
from sqlseam.models.options import FetchOptions


class Account:
    def __init__(self, id, owner, balance, currency="USD"):
        self.id = id
        self.owner = owner
        self.balance = balance
        self.currency = currency


class TestExecute:
    """Test statement execution and parameters"""

    def test_execute_positional(self, memory_db):
        """Test executing with a sequence of values"""
        statement = memory_db.prepare("SELECT owner FROM accounts WHERE id = ?")
        assert statement.execute([2]) is True
        assert statement.fetch_column() == "bob"

    def test_execute_named(self, memory_db):
        """Test executing with a mapping, with and without leading colons"""
        statement = memory_db.prepare("SELECT id FROM accounts WHERE owner = :owner")
        assert statement.execute({"owner": "alice"}) is True
        assert statement.fetch_column() == 1
        assert statement.execute({":owner": "bob"}) is True
        assert statement.fetch_column() == 2

    def test_repeated_execution(self, memory_db):
        """Test that a statement can be executed many times"""
        statement = memory_db.prepare("INSERT INTO t (x) VALUES (?)")
        for value in range(5):
            assert statement.execute((value,)) is True
            assert statement.row_count() == 1
        assert memory_db.query("SELECT COUNT(*) FROM t").fetch_column() == 5

    def test_wrong_parameter_count(self, memory_db):
        """Test that a parameter count mismatch fails with HY093"""
        statement = memory_db.prepare("SELECT * FROM accounts WHERE id = ? AND owner = ?")
        assert statement.execute([1]) is False
        assert statement.error_code() == "HY093"
        assert memory_db.error_code() == "HY093"

    def test_missing_named_parameter(self, memory_db):
        """Test that a missing name fails"""
        statement = memory_db.prepare("SELECT * FROM accounts WHERE owner = :owner")
        assert statement.execute({"name": "alice"}) is False
        assert statement.error_code() == "HY093"

    def test_parameters_for_statement_without_placeholders(self, memory_db):
        """Test that unexpected parameters are rejected"""
        statement = memory_db.prepare("SELECT 1")
        assert statement.execute([1]) is False

    def test_bind_value(self, memory_db):
        """Test binding values before execute"""
        statement = memory_db.prepare("SELECT owner FROM accounts WHERE id = ? AND balance > ?")
        assert statement.bind_value(1, "1", ParamType.INT) is True
        assert statement.bind_value(2, 0, ParamType.INT) is True
        assert statement.execute() is True
        assert statement.fetch_column() == "alice"

    def test_bind_named_value(self, memory_db):
        """Test binding by name"""
        statement = memory_db.prepare("SELECT id FROM accounts WHERE owner = :owner")
        assert statement.bind_value(":owner", "bob") is True
        assert statement.execute() is True
        assert statement.fetch_column() == 2

    def test_bind_unknown_parameter(self, memory_db):
        """Test binding a parameter the statement does not have"""
        statement = memory_db.prepare("SELECT id FROM accounts WHERE id = ?")
        assert statement.bind_value(2, 1) is False
        assert statement.error_code() == "HY093"

    def test_bind_invalid_int(self, memory_db):
        """Test that a non-integral INT value is rejected"""
        statement = memory_db.prepare("SELECT id FROM accounts WHERE id = ?")
        assert statement.bind_value(1, "one", ParamType.INT) is False
        assert statement.error_code() == "HY105"

    def test_execute_without_bound_values(self, memory_db):
        """Test executing before binding every position"""
        statement = memory_db.prepare("SELECT id FROM accounts WHERE id = ?")
        assert statement.execute() is False
        assert statement.error_code() == "HY093"

    def test_execute_constraint_violation(self, strict_db):
        """Test that driver errors on execute raise in exception mode"""
        statement = strict_db.prepare("INSERT INTO users (name) VALUES (?)")
        with pytest.raises(StatementError) as exc_info:
            statement.execute(["alice"])
        assert exc_info.value.sqlstate == "23000"
        assert statement.error_code() == "23000"

    def test_execute_after_connection_closed(self, memory_db):
        """Test that statements do not outlive their connection"""
        statement = memory_db.prepare("SELECT 1")
        memory_db.close()
        assert statement.execute() is False
        assert statement.error_code() == "08003"

    def test_success_clears_statement_error(self, memory_db):
        """Test that a successful execute resets the statement error"""
        statement = memory_db.prepare("SELECT id FROM accounts WHERE id = ?")
        statement.execute([])
        assert statement.error_code() == "HY093"
        statement.execute([1])
        assert statement.error_code() is None
        assert memory_db.error_code() is None


class TestFetch:
    """Test the fetch modes"""

    def test_fetch_before_execute(self, memory_db):
        """Test fetching from a statement that never ran"""
        statement = memory_db.prepare("SELECT * FROM accounts")
        assert statement.fetch() is None
        assert statement.error_code() == "HY010"

    def test_fetch_assoc_default(self, memory_db):
        """Test the default dict rows"""
        statement = memory_db.query("SELECT id, owner FROM accounts ORDER BY id")
        assert statement.fetch() == {"id": 1, "owner": "alice"}
        assert statement.fetch() == {"id": 2, "owner": "bob"}
        assert statement.fetch() is None

    def test_fetch_both(self, memory_db):
        """Test rows keyed by name and position"""
        statement = memory_db.query("SELECT id, owner FROM accounts WHERE id = 1")
        assert statement.fetch(FetchMode.BOTH) == {"id": 1, "owner": "alice", 0: 1, 1: "alice"}

    def test_fetch_obj(self, memory_db):
        """Test attribute-style rows"""
        statement = memory_db.query("SELECT id, owner FROM accounts WHERE id = 2", FetchMode.OBJ)
        row = statement.fetch()
        assert isinstance(row, SimpleNamespace)
        assert row.owner == "bob"

    def test_fetch_class(self, memory_db):
        """Test rows built into instances of a class"""
        statement = memory_db.query(
            "SELECT id, owner, balance FROM accounts ORDER BY id",
            FetchOptions(mode=FetchMode.CLASS, cls=Account),
        )
        accounts = statement.fetch_all()
        assert [type(account) for account in accounts] == [Account, Account]
        assert accounts[0].balance == 500

    def test_fetch_class_with_constructor_args(self, memory_db):
        """Test extra positional constructor arguments"""
        options = FetchOptions(mode=FetchMode.CLASS, cls=Account, ctor_args=(9,))
        statement = memory_db.query("SELECT owner, balance FROM accounts WHERE id = 1", options)
        account = statement.fetch()
        assert account.id == 9
        assert account.owner == "alice"

    def test_fetch_class_mismatch(self, memory_db):
        """Test that columns the class cannot take fail the fetch"""
        statement = memory_db.query(
            "SELECT id, owner, balance, 1 AS extra FROM accounts",
            FetchOptions(mode=FetchMode.CLASS, cls=Account),
        )
        assert statement.fetch() is None
        assert statement.error_code() == "HY000"

    def test_fetch_key_pair(self, memory_db):
        """Test two-column rows collected into a dict"""
        statement = memory_db.query("SELECT owner, balance FROM accounts", FetchMode.KEY_PAIR)
        assert statement.fetch_all() == {"alice": 500, "bob": 100}

    def test_fetch_key_pair_needs_two_columns(self, memory_db):
        """Test KEY_PAIR on a three-column result"""
        statement = memory_db.query("SELECT id, owner, balance FROM accounts", FetchMode.KEY_PAIR)
        assert statement.fetch_all() is None
        assert statement.error_code() == "HY000"

    def test_fetch_column_index(self, memory_db):
        """Test fetching a single column"""
        statement = memory_db.query("SELECT id, owner FROM accounts ORDER BY id")
        assert statement.fetch_column(1) == "alice"
        assert statement.fetch_column(0) == 2
        assert statement.fetch_column() is None

    def test_fetch_column_out_of_range(self, memory_db):
        """Test an invalid column index"""
        statement = memory_db.query("SELECT id FROM accounts")
        assert statement.fetch_column(3) is None
        assert statement.error_code() == "HY000"
        assert statement.fetch_column(-1) is None

    def test_fetch_from_write_statement(self, memory_db):
        """Test that statements without a result set fetch nothing"""
        statement = memory_db.query("UPDATE accounts SET balance = balance + 1")
        assert statement.row_count() == 2
        assert statement.column_count() == 0
        assert statement.fetch() is None
        assert statement.fetch_all() == []
        assert statement.error_code() is None

    def test_iteration(self, memory_db):
        """Test iterating over a statement"""
        statement = memory_db.query("SELECT id FROM accounts ORDER BY id", FetchMode.COLUMN)
        assert list(statement) == [1, 2]

    def test_iteration_keeps_null_columns(self, memory_db):
        """Test that NULL values do not end iteration early"""
        statement = memory_db.query("SELECT email FROM users ORDER BY id DESC", FetchMode.COLUMN)
        assert list(statement) == [None, "alice@example.com"]

    def test_set_fetch_mode(self, memory_db):
        """Test changing the fetch mode of an executed statement"""
        statement = memory_db.query("SELECT id, owner FROM accounts ORDER BY id")
        assert statement.set_fetch_mode(FetchMode.NUM) is True
        assert statement.fetch() == (1, "alice")
        assert statement.set_fetch_mode(FetchMode.CLASS) is False

    def test_successful_fetch_clears_connection_error(self, memory_db):
        """Test that fetching after an unrelated failure resets the last error"""
        statement = memory_db.query("SELECT id FROM accounts ORDER BY id")
        assert memory_db.exec("SELEC broken") is None
        assert memory_db.error_code() == "HY000"
        assert statement.fetch() == {"id": 1}
        assert memory_db.error_code() is None

    @pytest.mark.parametrize(
        "operation",
        [
            lambda statement: statement.fetch_all(),
            lambda statement: list(statement),
            lambda statement: statement.set_fetch_mode(FetchMode.NUM),
        ],
        ids=["fetch_all", "iterate", "set_fetch_mode"],
    )
    def test_successful_operations_clear_connection_error(self, memory_db, operation):
        statement = memory_db.query("SELECT id FROM accounts ORDER BY id")
        memory_db.exec("SELEC broken")
        operation(statement)
        assert memory_db.error_code() is None
        assert statement.error_code() is None

    def test_column_count(self, memory_db):
        """Test the number of result columns"""
        statement = memory_db.query("SELECT id, owner, balance FROM accounts")
        assert statement.column_count() == 3

    def test_close_cursor_then_reexecute(self, memory_db):
        """Test freeing the result set"""
        statement = memory_db.query("SELECT id FROM accounts ORDER BY id", FetchMode.COLUMN)
        assert statement.fetch() == 1
        assert statement.close_cursor() is True
        assert statement.execute() is True
        assert statement.fetch() == 1


class TestStatementAttributes:
    """Test statement-level attribute overrides from prepare options"""

    def test_case_override(self, memory_db):
        """Test upper-casing column names for one statement"""
        statement = memory_db.prepare("SELECT id, owner FROM accounts WHERE id = 1", {Attribute.CASE: CaseMode.UPPER})
        statement.execute()
        assert statement.fetch() == {"ID": 1, "OWNER": "alice"}
        assert memory_db.query("SELECT id FROM accounts WHERE id = 1").fetch() == {"id": 1}

    def test_default_fetch_mode_override(self, memory_db):
        """Test a per-statement default fetch mode"""
        statement = memory_db.prepare("SELECT id, owner FROM accounts WHERE id = 2", {Attribute.DEFAULT_FETCH_MODE: FetchMode.NUM})
        statement.execute()
        assert statement.fetch() == (2, "bob")

    def test_stringify_fetches(self, memory_db):
        """Test converting fetched values to strings"""
        statement = memory_db.prepare("SELECT id, balance, NULL AS empty FROM accounts WHERE id = 1", {Attribute.STRINGIFY_FETCHES: True})
        statement.execute()
        assert statement.fetch() == {"id": "1", "balance": "500", "empty": None}

    def test_connection_level_attribute_rejected(self, memory_db):
        """Test that only statement attributes are accepted as options"""
        assert memory_db.prepare("SELECT 1", {Attribute.TIMEOUT: 3}) is None
        assert memory_db.error_code() == "IM001"

    def test_invalid_option_value(self, memory_db):
        """Test an invalid value for a statement attribute"""
        assert memory_db.prepare("SELECT 1", {Attribute.CASE: 42}) is None
        assert memory_db.error_code() == "HY024"
