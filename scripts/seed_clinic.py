import asyncio
import os
import sys
from decimal import Decimal
from sqlalchemy.future import select

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.core.db import SessionLocal, init_models
from app.core.security import hash_password
from app.modules.admin.models import AdminUser
from app.modules.procedures.models import Procedure
from app.modules.reminders.models import ReminderConfig

PROCEDURES = [
    # (category, name, price, minutes)
    ("preventive", "Dental Examination", "50.00", 30),
    ("preventive", "Cleaning and Polishing", "90.00", 45),
    ("preventive", "Fluoride Treatment", "35.00", 15),
    ("diagnostic", "Bitewing X-Ray", "40.00", 15),
    ("diagnostic", "Panoramic X-Ray", "95.00", 20),
    ("restorative", "Composite Filling", "150.00", 45),
    ("restorative", "Porcelain Crown", "950.00", 90),
    ("endodontic", "Root Canal Treatment", "800.00", 90),
    ("periodontic", "Scaling and Root Planing", "220.00", 60),
    ("oral_surgery", "Simple Extraction", "150.00", 30),
    ("oral_surgery", "Wisdom Tooth Extraction", "400.00", 60),
    ("cosmetic", "Teeth Whitening", "350.00", 60),
]

REMINDERS = [
    {
        "reminder_type": "24_hour",
        "hours_before": 24,
        "subject_template": "Appointment Reminder - Tomorrow at {{appointment_time}}",
        "body_template": (
            "Dear {{patient_name}},\n\n"
            "This is a friendly reminder about your dental appointment tomorrow.\n\n"
            "Date: {{appointment_date}}\n"
            "Time: {{appointment_time}}\n"
            "Duration: {{duration}} minutes\n"
            "Reason: {{reason}}\n\n"
            "Please arrive 10 minutes early. Your patient ID is {{patient_id}}."
        ),
    },
    {
        "reminder_type": "day_of",
        "hours_before": 2,
        "subject_template": "Your appointment today at {{appointment_time}}",
        "body_template": (
            "Dear {{patient_name}},\n\n"
            "We look forward to seeing you today at {{appointment_time}} for {{reason}}.\n\n"
            "If you are running late, please give us a call."
        ),
    },
]

async def seed_admin(db):
    username = os.getenv("SEED_ADMIN_USERNAME", "admin")
    res = await db.execute(select(AdminUser).where(AdminUser.username == username))
    if res.scalars().first():
        print(f"  - Admin '{username}' already exists. Skipping.")
        return
    password = os.getenv("SEED_ADMIN_PASSWORD")
    if not password:
        print("  - SEED_ADMIN_PASSWORD not set; not creating an admin.")
        return
    db.add(AdminUser(
        username=username,
        password_hash=hash_password(password),
        email=os.getenv("SEED_ADMIN_EMAIL", "admin@example.com"),
    ))
    print(f"  - Created admin '{username}'.")

async def seed_procedures(db):
    created = 0
    for category, name, price, minutes in PROCEDURES:
        res = await db.execute(select(Procedure).where(Procedure.name == name))
        if res.scalars().first():
            continue
        db.add(Procedure(category=category, name=name, price=Decimal(price), estimated_duration=minutes, is_active=True))
        created += 1
    print(f"  - Added {created} procedure(s).")

async def seed_reminders(db):
    for cfg in REMINDERS:
        res = await db.execute(select(ReminderConfig).where(ReminderConfig.reminder_type == cfg["reminder_type"]))
        if res.scalars().first():
            print(f"  - Reminder config '{cfg['reminder_type']}' already exists. Skipping.")
            continue
        db.add(ReminderConfig(is_enabled=True, **cfg))
        print(f"  - Created reminder config '{cfg['reminder_type']}'.")

async def main():
    """
    Seeds the default admin, the procedure catalog and reminder configs. Safe to re-run.
    """
    print("Seeding clinic data...")
    await init_models()
    async with SessionLocal() as db:
        await seed_admin(db)
        await seed_procedures(db)
        await seed_reminders(db)
        await db.commit()
    print("Done.")

if __name__ == "__main__":
    asyncio.run(main())
