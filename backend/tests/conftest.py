"""
Root pytest configuration for backend tests.

Provides:
- Shared fixtures (app, client, seeded SQLite database)
- Test doubles for the dashboard client (manual timers, fake clock)
"""

import sys
from pathlib import Path

# Add backend directory to Python path so imports like
# `from db.sql import ...` and `from services.ttl_cache import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from sqlalchemy.pool import StaticPool

GROUP_BUCKET_ID = 1
USER_BUCKET_ID = 2
SCOPED_USER_ID = 7
UNSCOPED_USER_ID = 99


def _seed(db):
    from models import AnalyticsGroup, Business, ReportPeriod, Site, UserGroup, Vertical

    db.session.add_all([
        AnalyticsGroup(analytics_group_id=GROUP_BUCKET_ID, analytics_group_level_name='GROUP SECURITY'),
        AnalyticsGroup(analytics_group_id=USER_BUCKET_ID, analytics_group_level_name='SITE SECURITY'),

        Vertical(vid=1, vname='Energy', vstatus='ACTIVE'),
        Vertical(vid=2, vname='Logistics', vstatus='ACTIVE'),
        Vertical(vid=3, vname='Agriculture', vstatus='ACTIVE'),
        Vertical(vid=4, vname='Mining', vstatus='INACTIVE'),

        Business(buid=10, vid=1, buname='Solar', bustatus='ACTIVE'),
        Business(buid=11, vid=1, buname='Grid Ops', bustatus='ACTIVE'),
        Business(buid=12, vid=1, buname='Legacy Coal', bustatus='INACTIVE'),
        Business(buid=20, vid=2, buname='Freight', bustatus='ACTIVE'),
        Business(buid=30, vid=3, buname='Dairy', bustatus='ACTIVE'),

        Site(siid=100, buid=10, siname='North Farm', sistatus='ACTIVE'),
        Site(siid=101, buid=10, siname='East Array', sistatus='ACTIVE'),
        Site(siid=110, buid=11, siname='Control Room', sistatus='ACTIVE'),
        Site(siid=200, buid=20, siname='Port Depot', sistatus='ACTIVE'),
        Site(siid=201, buid=20, siname='Closed Yard', sistatus='INACTIVE'),

        # user 7 sees Energy (Solar only, one site) and Logistics
        UserGroup(id=1, userid=SCOPED_USER_ID, vid=1, buid=10, siid=100),
        UserGroup(id=2, userid=SCOPED_USER_ID, vid=2, buid=None, siid=None),

        ReportPeriod(id=1, year=2023, month=11, monthname='November'),
        ReportPeriod(id=2, year=2023, month=12, monthname='December'),
        ReportPeriod(id=3, year=2024, month=1, monthname='January'),
        ReportPeriod(id=4, year=2024, month=2, monthname='February'),
        ReportPeriod(id=5, year=2024, month=2, monthname='February'),
    ])
    db.session.commit()


@pytest.fixture
def app():
    """Create test Flask application backed by a seeded in-memory SQLite DB."""
    from app import create_app
    from models.database import db

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_ENGINE_OPTIONS': {
            'poolclass': StaticPool,
            'connect_args': {'check_same_thread': False},
        },
        'DB_SCHEMA': '',
        'CACHE_SWEEPER_ENABLED': False,
    })

    with app.app_context():
        db.create_all()
        _seed(db)

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
    app.extensions['filter_cache'].close()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


class FakeClock:
    """Wall clock in seconds that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class ManualTimer:
    def __init__(self, seconds, fn):
        self.seconds = seconds
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTimerFactory:
    """Timer factory for debounce tests; fire() runs live timers by hand."""

    def __init__(self):
        self.timers = []

    def __call__(self, seconds, fn):
        timer = ManualTimer(seconds, fn)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if not t.cancelled]

    def fire(self):
        fired = 0
        for timer in list(self.live):
            timer.cancelled = True
            timer.fn()
            fired += 1
        return fired


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def timers():
    return ManualTimerFactory()
