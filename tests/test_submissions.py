import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from tests.fakes import FakeDatabase, FakeDirectory, db_error, make_context

from dynforms.core.errors import DirectoryLookupFailed, EntryNotFound, ParseFailed, PersistenceFailed
from dynforms.models.form import Field, FieldType, Form
from dynforms.models.values import NULL, BooleanValue, IntegerValue, TextValue, TimestampValue
from dynforms.services.authorization import Caller, Role
from dynforms.services.submissions import first_value, load_entries, load_entry, save_submission

ALICE = Caller(username="alice", role=Role.OWNER)
BOSS = Caller(username="boss", role=Role.ADMIN)

ALICE_DIRECTORY = {
    "user_employee_number": "1001",
    "user_display_name": "Alice Smith",
    "user_department": "Finance",
    "user_email": "alice@corp.example",
    "user_location": "Leeds",
    "manager": "bob",
    "manager_employee_number": "900",
    "manager_display_name": "Bob Jones",
    "manager_department": "Finance",
    "manager_email": "bob@corp.example",
    "manager_location": "Leeds",
}


def _leave_form():
    fields = [
        Field(name="employee_name", field_type=FieldType.VARCHAR, required=True, include_in_summary=True),
        Field(name="start_at", field_type=FieldType.TIMESTAMP, required=True),
        Field(name="days", field_type=FieldType.INTEGER, required=True, include_in_summary=True),
        Field(name="paid", field_type=FieldType.BOOLEAN, required=False),
        Field(name="notes", field_type=FieldType.TEXT, required=False),
    ]
    return Form(
        path="leave",
        name="Leave request",
        description="",
        table_name="leave_requests",
        admins=frozenset({"boss"}),
        fields=fields,
        column_names=frozenset(fld.name for fld in fields),
    )


def _directory_form():
    fields = [
        Field(name="reason", field_type=FieldType.TEXT, required=True),
        Field(name="user_email", field_type=FieldType.VARCHAR, required=False, is_directory_populated=True),
        Field(name="manager", field_type=FieldType.VARCHAR, required=False, is_directory_populated=True),
    ]
    return Form(
        path="travel",
        name="Travel",
        description="",
        table_name="travel_requests",
        use_directory_fields=True,
        fields=fields,
        column_names=frozenset(fld.name for fld in fields),
    )


LEAVE_SUBMISSION = {
    "employee_name": ["Alice"],
    "start_at": ["2024-06-01T09:00"],
    "days": ["3"],
    "timezone-offset": ["-60"],
}


class FirstValueTests(unittest.TestCase):
    def test_first_value(self):
        self.assertEqual(first_value({"a": ["x", "y"]}, "a"), "x")
        self.assertEqual(first_value({"a": []}, "a"), "")
        self.assertEqual(first_value({"a": "z"}, "a"), "z")
        self.assertEqual(first_value({}, "a"), "")


class SaveSubmissionTests(unittest.IsolatedAsyncioTestCase):
    async def test_insert_binds_owner_and_local_timestamp(self):
        db = FakeDatabase().on("INSERT INTO leave_requests", 41)
        saved_id = await save_submission(make_context(db), _leave_form(), ALICE, LEAVE_SUBMISSION)

        self.assertEqual(saved_id, 41)
        (insert,) = db.statements
        self.assertEqual(
            insert.params,
            (
                TextValue("alice"),
                TextValue("Alice"),
                TimestampValue("2024-06-01 09:00+01:00"),
                IntegerValue(3),
                BooleanValue(False),
                NULL,
            ),
        )

    async def test_leave_request_example(self):
        fields = [
            Field(name="reason", field_type=FieldType.TEXT, required=True),
            Field(name="days", field_type=FieldType.INTEGER, required=True),
            Field(name="start", field_type=FieldType.TIMESTAMP, required=True),
        ]
        form = Form(
            path="leave-request",
            name="Leave request",
            description="",
            table_name="leave_requests",
            fields=fields,
            column_names=frozenset({"reason", "days", "start"}),
        )
        db = FakeDatabase().on("INSERT INTO leave_requests", 1)
        submitted = {"days": "3", "reason": "vacation", "start": "2024-06-01T09:00", "timezone-offset": "-60"}

        await save_submission(make_context(db), form, ALICE, submitted)

        (insert,) = db.statements
        self.assertEqual(insert.params[0], TextValue("alice"))
        self.assertEqual(insert.params[3], TimestampValue("2024-06-01 09:00+01:00"))

    async def test_empty_required_integer_fails_before_any_write(self):
        db = FakeDatabase().on("INSERT INTO leave_requests", 41)
        submitted = dict(LEAVE_SUBMISSION, days=[""])
        with self.assertRaises(ParseFailed) as ctx:
            await save_submission(make_context(db), _leave_form(), ALICE, submitted)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(db.statements, [])

    async def test_bad_timestamps_are_client_errors(self):
        db = FakeDatabase().on("INSERT INTO leave_requests", 41)
        for raw in ("", "not a date"):
            with self.subTest(raw=raw):
                submitted = dict(LEAVE_SUBMISSION, start_at=[raw])
                with self.assertRaises(ParseFailed) as ctx:
                    await save_submission(make_context(db), _leave_form(), ALICE, submitted)
                self.assertEqual(ctx.exception.field, "start_at")
                self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(db.statements, [])

    async def test_update_by_owner(self):
        db = FakeDatabase().on("UPDATE leave_requests", 5)
        submitted = dict(LEAVE_SUBMISSION, id=["5"], paid=["1"])
        saved_id = await save_submission(make_context(db), _leave_form(), ALICE, submitted)

        self.assertEqual(saved_id, 5)
        (update,) = db.statements
        self.assertIn("created_user = $2", update.sql)
        self.assertEqual(update.params[:2], (IntegerValue(5), TextValue("alice")))
        self.assertIn(BooleanValue(True), update.params)

    async def test_update_of_foreign_or_missing_row(self):
        db = FakeDatabase().on("UPDATE leave_requests", None)
        submitted = dict(LEAVE_SUBMISSION, id=["5"])
        with self.assertRaises(EntryNotFound) as ctx:
            await save_submission(make_context(db), _leave_form(), ALICE, submitted)
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_update_with_bad_id(self):
        db = FakeDatabase()
        with self.assertRaises(ParseFailed):
            await save_submission(make_context(db), _leave_form(), ALICE, dict(LEAVE_SUBMISSION, id=["five"]))
        self.assertEqual(db.statements, [])

    async def test_insert_without_returned_id(self):
        db = FakeDatabase().on("INSERT INTO leave_requests", None)
        with self.assertRaises(PersistenceFailed):
            await save_submission(make_context(db), _leave_form(), ALICE, LEAVE_SUBMISSION)

    async def test_driver_errors_become_persistence_failures(self):
        db = FakeDatabase().on("INSERT INTO leave_requests", db_error("null value in column"))
        with self.assertRaises(PersistenceFailed) as ctx:
            await save_submission(make_context(db), _leave_form(), ALICE, LEAVE_SUBMISSION)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertNotIn("null value", ctx.exception.detail())

    async def test_directory_values_replace_submitted_ones_on_insert(self):
        db = FakeDatabase().on("INSERT INTO travel_requests", 8)
        directory = FakeDirectory({"alice": ALICE_DIRECTORY})
        submitted = {"reason": ["conference"], "user_email": ["forged@evil.example"]}

        await save_submission(make_context(db, directory=directory), _directory_form(), ALICE, submitted)

        self.assertEqual(directory.lookups, ["alice"])
        (insert,) = db.statements
        self.assertEqual(
            insert.params,
            (TextValue("alice"), TextValue("conference"), TextValue("alice@corp.example"), TextValue("bob")),
        )

    async def test_directory_is_not_consulted_on_update(self):
        db = FakeDatabase().on("UPDATE travel_requests", 8)
        directory = FakeDirectory({"alice": ALICE_DIRECTORY})

        await save_submission(
            make_context(db, directory=directory),
            _directory_form(),
            ALICE,
            {"id": ["8"], "reason": ["moved"]},
        )

        self.assertEqual(directory.lookups, [])
        (update,) = db.statements
        self.assertNotIn("user_email", update.sql)
        self.assertEqual(update.params, (IntegerValue(8), TextValue("alice"), TextValue("moved")))

    async def test_directory_failure_stops_the_insert(self):
        db = FakeDatabase().on("INSERT INTO travel_requests", 8)
        directory = FakeDirectory(fail=True)
        with self.assertRaises(DirectoryLookupFailed):
            await save_submission(make_context(db, directory=directory), _directory_form(), ALICE, {"reason": ["x"]})
        self.assertEqual(db.statements, [])


class LoadEntryTests(unittest.IsolatedAsyncioTestCase):
    async def test_entry_values_are_display_strings(self):
        created = datetime(2024, 5, 30, 8, 15, tzinfo=timezone.utc)
        start = datetime(2024, 6, 1, 9, 0, tzinfo=timezone(timedelta(hours=1)))
        db = FakeDatabase().on("FROM leave_requests WHERE id", (5, "alice", created, "Alice", start, 3, True, None))

        values = await load_entry(make_context(db), _leave_form(), ALICE, 5)

        self.assertEqual(
            values,
            {
                "id": "5",
                "created_user": "alice",
                "created_ts": "2024-05-30T08:15",
                "employee_name": "Alice",
                "start_at": "2024-06-01T09:00",
                "days": "3",
                "paid": "1",
                "notes": "",
            },
        )
        self.assertEqual(db.statements[0].params, (IntegerValue(5), TextValue("alice")))

    async def test_missing_entry(self):
        db = FakeDatabase()
        with self.assertRaises(EntryNotFound):
            await load_entry(make_context(db), _leave_form(), ALICE, 99)

    async def test_list_uses_summary_fields(self):
        created = datetime(2024, 5, 30, 8, 15, tzinfo=timezone.utc)
        rows = [(2, "alice", created, "Alice", 3), (1, "carol", created, "Carol", 10)]
        db = FakeDatabase().on("ORDER BY created_ts DESC", rows)

        entries = await load_entries(make_context(db), _leave_form(), BOSS)

        self.assertEqual([entry["id"] for entry in entries], ["2", "1"])
        self.assertEqual(entries[1], {
            "id": "1",
            "created_user": "carol",
            "created_ts": "2024-05-30T08:15",
            "employee_name": "Carol",
            "days": "10",
        })
        self.assertEqual(db.statements[0].params, ())

    async def test_list_with_money_column(self):
        fields = [Field(name="cost", field_type=FieldType.MONEY, required=False, include_in_summary=True)]
        form = Form(
            path="claims",
            name="Claims",
            description="",
            table_name="claims",
            fields=fields,
            column_names=frozenset({"cost"}),
        )
        db = FakeDatabase().on("cost::numeric", [(1, "alice", None, Decimal("12.5"))])
        (entry,) = await load_entries(make_context(db), form, ALICE)
        self.assertEqual(entry["cost"], "12.50")
        self.assertEqual(entry["created_ts"], "")
