"""
Shared fixtures: a throwaway SQLite database per test, seeded reference
data (two bases, one equipment type) and one actor per role.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from asset_tracker.core.clock import utcnow
from asset_tracker.core.db import Base
from asset_tracker.core.security import create_access_token, hash_password
from asset_tracker.deps import get_db
from asset_tracker.main import app
from asset_tracker.models.enums import AssetStatus, EquipmentCategory, Role
from asset_tracker.models.equipment_type import EquipmentType
from asset_tracker.models.military_base import MilitaryBase
from asset_tracker.models.user import User
from asset_tracker.services.asset_service import new_asset

PASSWORD = "password123"


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'asset_tracker.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def ftl(db):
    base = MilitaryBase(name="FTL", code="FTL001", location="North Carolina")
    db.add(base)
    db.commit()
    return base


@pytest.fixture
def ftb(db):
    base = MilitaryBase(name="FTB", code="FTB001", location="Texas")
    db.add(base)
    db.commit()
    return base


@pytest.fixture
def m4a1(db):
    et = EquipmentType(name="M4A1", code="WPN-M4A1", category=EquipmentCategory.WEAPON.value)
    db.add(et)
    db.commit()
    return et


def _user(db, username, role, base=None):
    user = User(
        username=username,
        fullname=username.replace("_", " ").title(),
        password_hash=hash_password(PASSWORD),
        role=role.value,
        assigned_base_id=base.id if base else None,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin(db):
    return _user(db, "admin", Role.ADMIN)


@pytest.fixture
def logistics(db):
    return _user(db, "logistics", Role.LOGISTICS_OFFICER)


@pytest.fixture
def cmd_ftl(db, ftl):
    return _user(db, "cmd_ftl", Role.BASE_COMMANDER, ftl)


@pytest.fixture
def cmd_ftb(db, ftb):
    return _user(db, "cmd_ftb", Role.BASE_COMMANDER, ftb)


@pytest.fixture
def soldier_ftl(db, ftl):
    return _user(db, "soldier_ftl", Role.USER, ftl)


@pytest.fixture
def soldier_ftb(db, ftb):
    return _user(db, "soldier_ftb", Role.USER, ftb)


@pytest.fixture
def make_asset(db):
    """Committed asset factory; ``age_days`` backdates ``created_at``."""
    def _make(base, equipment_type, quantity=1, status=AssetStatus.AVAILABLE, age_days=None, **kwargs):
        asset = new_asset(
            db,
            equipment_type_id=equipment_type.id,
            base_id=base.id,
            quantity=quantity,
            status=status.value,
            **kwargs,
        )
        if age_days is not None:
            asset.created_at = utcnow() - timedelta(days=age_days)
        db.commit()
        return asset

    return _make


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}

    return _headers
