"""
Seed the clinic database with sample patients and upcoming appointments

Usage: python seed_data.py [--days N] [--max-per-day N]
"""
import argparse
import logging
import random
from datetime import datetime, time, timedelta

from sqlalchemy import func, select

from appointment_analytics import local_today
from config import ANALYTICS_DAYS, configure_logging
from db import DatabaseError, appointments, get_database, patients

logger = logging.getLogger(__name__)

SAMPLE_PATIENTS = [
    {'name': 'Ahmad bin Ismail', 'ic_number': '850312-14-5521', 'phone': '0123456789'},
    {'name': 'Lim Mei Ling', 'ic_number': '900705-10-6642', 'phone': '0167788990'},
    {'name': 'Kavitha Raman', 'ic_number': '880221-08-3310', 'phone': '0193344556'},
    {'name': 'Nurul Aisyah', 'ic_number': '950918-03-7784', 'phone': '0112233445'},
]

DOCTORS = ['Dr. Ali Rahman', 'Dr. Siti Nurhaliza', 'Dr. Tan Wei Ming', 'Dr. Priya Sharma', 'Dr. Ahmad Zaki']
REASONS = ['General consultation', 'Follow-up', 'Vaccination', 'Blood test review', 'Skin screening']


def seed_sample_appointments(database=None, days=ANALYTICS_DAYS, per_day_max=6, rng=None):
    """
    Create the schema, sample patients (if there are none) and random appointments

    Args:
        database: Database to seed, defaults to the process-wide one
        days: Number of days from today to fill
        per_day_max: Upper bound of appointments per day
        rng: Random generator, for repeatable seeds

    Returns:
        Number of appointments created
    """
    database = database or get_database()
    rng = rng or random.Random()
    database.create_schema()

    patient_count = database.fetch_one(select(func.count().label('count')).select_from(patients))['count']
    patient_ids = []
    with database.transaction():
        if patient_count == 0:
            print("📝 Creating sample patients...")
            for patient in SAMPLE_PATIENTS:
                database.execute_update(patients.insert().values(**patient))
                patient_ids.append(database.last_insert_id)
                print(f"✅ Created: {patient['name']}")
        else:
            patient_ids = [row['id'] for row in database.fetch_all(select(patients.c.id))]

        created = 0
        today = local_today()
        for offset in range(days):
            day = today + timedelta(days=offset)
            for _ in range(rng.randint(0, per_day_max)):
                start = datetime.combine(day, time(hour=rng.randint(8, 16), minute=rng.choice([0, 15, 30, 45])))
                database.execute_update(appointments.insert().values(
                    patient_id=rng.choice(patient_ids),
                    doctor_name=rng.choice(DOCTORS),
                    reason=rng.choice(REASONS),
                    start_time=start,
                    end_time=start + timedelta(minutes=30),
                    appointment_date=day
                ))
                created += 1

    logger.info("Seeded %s appointments over %s days", created, days)
    return created


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed the clinic database with sample data")
    parser.add_argument("--days", type=int, default=ANALYTICS_DAYS)
    parser.add_argument("--max-per-day", type=int, default=6)
    args = parser.parse_args(argv)
    configure_logging()

    print("🏥 Clinic Database Seeder")
    print("========================\n")
    try:
        created = seed_sample_appointments(days=args.days, per_day_max=args.max_per_day)
    except DatabaseError as e:
        print(f"❌ Error during database seeding: {e}")
        print("   Please check your database connection and try again.")
        return 1

    print(f"\n🎉 Database seeding completed successfully! {created} appointments created.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
