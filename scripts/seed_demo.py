"""
Seed demo bases, equipment types, users and a starting stock.
Idempotent: existing rows (matched by code / username) are left alone.

Usage: DATABASE_URL=... python scripts/seed_demo.py
"""
from asset_tracker.core.db import Base, SessionLocal, engine
from asset_tracker.core.security import hash_password
from asset_tracker.models.asset import Asset
from asset_tracker.models.enums import EquipmentCategory, Role
from asset_tracker.models.equipment_type import EquipmentType
from asset_tracker.models.military_base import MilitaryBase
from asset_tracker.models.user import User
from asset_tracker.services.asset_service import new_asset

DEMO_PASSWORD = "changeme123"

# (name, code, location)
BASES = [
    ("Fort Liberty", "FTL001", "North Carolina"),
    ("Fort Bliss", "FTB001", "Texas"),
    ("Fort Carson", "FTC001", "Colorado"),
]

# (name, code, category)
EQUIPMENT_TYPES = [
    ("M4A1", "WPN-M4A1", EquipmentCategory.WEAPON),
    ("HMMWV", "VEH-HMMWV", EquipmentCategory.VEHICLE),
    ("5.56mm Ball", "AMM-556", EquipmentCategory.AMMUNITION),
    ("Night Vision Goggles", "EQP-NVG", EquipmentCategory.EQUIPMENT),
]

# (username, fullname, role, base code)
USERS = [
    ("admin", "System Administrator", Role.ADMIN, None),
    ("logistics", "Logistics Officer", Role.LOGISTICS_OFFICER, None),
    ("cmd_ftl", "Commander Fort Liberty", Role.BASE_COMMANDER, "FTL001"),
    ("cmd_ftb", "Commander Fort Bliss", Role.BASE_COMMANDER, "FTB001"),
    ("pvt_ftl", "Private Fort Liberty", Role.USER, "FTL001"),
]

# (base code, equipment code, quantity per record, records)
STOCK = [
    ("FTL001", "WPN-M4A1", 1, 5),
    ("FTL001", "AMM-556", 1000, 2),
    ("FTB001", "VEH-HMMWV", 1, 3),
    ("FTB001", "EQP-NVG", 1, 4),
]


def seed_demo():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        print("Seeding bases...")
        bases = {}
        for name, code, location in BASES:
            base = db.query(MilitaryBase).filter(MilitaryBase.code == code).first()
            if not base:
                base = MilitaryBase(name=name, code=code, location=location)
                db.add(base)
                db.flush()
                print(f"  OK: {code} ({name})")
            bases[code] = base

        print("Seeding equipment types...")
        types = {}
        for name, code, category in EQUIPMENT_TYPES:
            et = db.query(EquipmentType).filter(EquipmentType.code == code).first()
            if not et:
                et = EquipmentType(name=name, code=code, category=category.value)
                db.add(et)
                db.flush()
                print(f"  OK: {code} ({category.value})")
            types[code] = et

        print("Seeding users...")
        for username, fullname, role, base_code in USERS:
            if db.query(User).filter(User.username == username).first():
                continue
            db.add(User(
                username=username,
                fullname=fullname,
                password_hash=hash_password(DEMO_PASSWORD),
                role=role.value,
                assigned_base_id=bases[base_code].id if base_code else None,
            ))
            print(f"  OK: {username} ({role.value})")

        if db.query(Asset.id).first():
            print("Assets already present, skipping stock")
        else:
            print("Seeding stock...")
            for base_code, type_code, quantity, records in STOCK:
                for _ in range(records):
                    asset = new_asset(
                        db,
                        equipment_type_id=types[type_code].id,
                        base_id=bases[base_code].id,
                        quantity=quantity,
                    )
                    print(f"  OK: {asset.serial_number} {type_code} x{quantity} @ {base_code}")

        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    print(f"\nDone! Demo users share the password '{DEMO_PASSWORD}'.")


if __name__ == '__main__':
    seed_demo()
