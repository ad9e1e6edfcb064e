"""
CLI command tests (Flask test CLI runner).
"""

from datetime import date, timedelta

from autoshop.models import CalendarSlot, Part, User


def test_init_db_seeds_default_accounts_once(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init-db"])
    assert result.exit_code == 0, result.output
    assert "Created user: admin@autoshop.local" in result.output

    again = runner.invoke(args=["system", "init-db"])
    assert "SKIP  User exists: admin@autoshop.local" in again.output
    assert db_session.query(User).count() == 2


def test_materialize_skips_weekends(app, db_session):
    start = date.today() + timedelta(days=7)
    monday = start + timedelta(days=(7 - start.weekday()) % 7)

    result = app.test_cli_runner().invoke(
        args=["calendar", "materialize", "--date", monday.isoformat(), "--days", "7"]
    )

    assert result.exit_code == 0, result.output
    assert "Done. 40 slots created." in result.output
    assert db_session.query(CalendarSlot).count() == 40


def test_add_part_and_low_stock(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "parts", "add",
        "--name", "Spark plug",
        "--part-number", "SP-9",
        "--price", "7.50",
        "--stock", "2",
        "--supplier", "Bosch",
    ])
    assert result.exit_code == 0, result.output

    part = db_session.query(Part).filter_by(part_number="SP-9").one()
    assert part.price_cents == 750
    assert part.supplier.company_name == "Bosch"

    duplicate = runner.invoke(args=["parts", "add", "--name", "x", "--part-number", "SP-9", "--price", "1"])
    assert duplicate.exit_code != 0

    low = runner.invoke(args=["parts", "low-stock"])
    assert "SP-9" in low.output


def test_create_user_rejects_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create",
        "--email", "new@example.com",
        "--first-name", "New",
        "--last-name", "User",
        "--password", "12345678",
    ])

    assert result.exit_code != 0
    assert db_session.query(User).count() == 0
