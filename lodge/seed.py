"""
Seed the lodge rooms and, when ADMIN_PASSWORD is set, an initial admin account.

    python -m lodge.seed

Safe to run repeatedly: rooms are matched by room number and the admin by username.
"""
import os
import logging
from decimal import Decimal
from lodge.config import Settings
from lodge.db import Database
from lodge.models import Room, RoomCategory, User, UserRole
from lodge.utils.auth import get_password_hash


logger = logging.getLogger(__name__)

ROOMS = [
    {
        "name": "Historic Room 101",
        "category": RoomCategory.HISTORIC,
        "description": "A charming historic room with original lodge character and modern amenities.",
        "capacity": 2,
        "base_price": Decimal("149.00"),
        "amenities": ["Private Bath", "Historic Charm", "WiFi", "Heating"],
        "images": ["interior_room_bedroom.png"],
        "room_number": "101",
    },
    {
        "name": "Mountain View Suite 201",
        "category": RoomCategory.MOUNTAIN_VIEW,
        "description": "Spacious suite with stunning mountain views and premium amenities.",
        "capacity": 4,
        "base_price": Decimal("199.00"),
        "amenities": ["Mountain View", "Private Bath", "Sitting Area", "WiFi", "Mini Fridge"],
        "images": ["interior_room_bedroom.png"],
        "room_number": "201",
    },
    {
        "name": "Family Cabin 301",
        "category": RoomCategory.FAMILY_CABIN,
        "description": "Large family cabin perfect for groups, with separate sleeping areas.",
        "capacity": 8,
        "base_price": Decimal("249.00"),
        "amenities": ["Separate Bedrooms", "Full Kitchen", "Living Area", "WiFi", "Fireplace"],
        "images": ["interior_room_bedroom.png"],
        "room_number": "301",
    },
]


def seed_rooms(db):
    created = 0
    for data in ROOMS:
        if db.query(Room.id).filter(Room.room_number == data["room_number"]).first():
            continue
        db.add(Room(**data))
        created += 1
    db.commit()
    return created


def seed_admin(db, username, email, password):
    if db.query(User.id).filter(User.username == username).first():
        return False
    db.add(
        User(
            username=username,
            email=email,
            hashed_password=get_password_hash(password),
            first_name="Lodge",
            last_name="Admin",
            role=UserRole.ADMIN,
        )
    )
    db.commit()
    return True


def main(settings: Settings = None):
    settings = settings or Settings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    database = Database(settings.database_url)
    database.init()
    db = database.SessionLocal()
    try:
        logger.info(f"Created {seed_rooms(db)} rooms")
        password = os.environ.get("ADMIN_PASSWORD")
        if password:
            username = os.environ.get("ADMIN_USERNAME", "admin")
            email = os.environ.get("ADMIN_EMAIL", "admin@mollybutlerlodge.com")
            if seed_admin(db, username, email, password):
                logger.info(f"Created admin user {username}")
        else:
            logger.info("ADMIN_PASSWORD not set, skipping admin user")
    finally:
        db.close()
        database.dispose()
    logger.info("Database seed completed")


if __name__ == "__main__":
    main()
