import os

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-live-db",
        action="store_true",
        default=False,
        help="Run live_db tests against the reporting database.",
    )
    parser.addoption(
        "--live-db-url",
        default=os.getenv("DATABASE_URL"),
        help="Reporting database URL for live_db tests (default: $DATABASE_URL).",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "live_db: read-only checks of the filter queries against the real "
        "reporting tables (vertical, business, site, usergroups, ol_dsrsecauto)"
    )


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-live-db"):
        reason = "live_db test (use --run-live-db to run)"
    elif not config.getoption("--live-db-url"):
        reason = "live_db test needs --live-db-url or DATABASE_URL"
    else:
        return

    skip_live_db = pytest.mark.skip(reason=reason)
    for item in items:
        if "live_db" in item.keywords:
            item.add_marker(skip_live_db)


@pytest.fixture(scope="session")
def live_db_url(pytestconfig):
    return pytestconfig.getoption("--live-db-url")
