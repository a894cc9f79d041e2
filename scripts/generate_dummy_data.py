#!/usr/bin/env python3
"""
Dummy Data Generator for the Case Ledger

This script fills the configured store (JSON files or PostgreSQL) with a
practitioner, their clients and their cases. Every record is written through
the CaseLedger, so hearing dates that move produce real history entries and
clients are linked to their cases the same way the API would link them.

Usage:
    python generate_dummy_data.py [--clear] [--count N] [--email ADDRESS]

Options:
    --clear     Remove existing collections before generating new data
    --count N   Number of cases to generate (default: 40)
"""

import argparse
import logging
import os
import random
import sys
from dataclasses import replace
from datetime import date, timedelta

from faker import Faker

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from case_ledger.config.settings import config  # noqa: E402
from case_ledger.models.entities import (  # noqa: E402
    CASE_TYPES,
    CASES,
    CLIENTS,
    PRIORITY_LEVELS,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    USERS,
    Case,
    Client,
    new_record_id,
)
from case_ledger.services.ledger_service import CaseLedger  # noqa: E402
from case_ledger.services.repository import RecordRepository  # noqa: E402
from case_ledger.services.store import PostgresStore, create_store  # noqa: E402

# Setup logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# Initialize Faker
fake = Faker()


class DummyDataGenerator:
    def __init__(self, ledger: CaseLedger):
        """Initialize the dummy data generator on top of a ledger."""
        self.ledger = ledger

        self.courts = [
            "District Court",
            "High Court",
            "Sessions Court",
            "Family Court",
            "Consumer Forum",
            "Civil Judge (Senior Division)",
            "Revenue Tribunal",
        ]
        self.case_prefixes = {
            "Civil": "OS",
            "Criminal": "CR",
            "Family": "FC",
            "Revenue": "RA",
            "Consumer": "CC",
            "Labour": "LC",
            "Writ": "WP",
            "Other": "MISC",
        }
        self.steps = [
            "Filing of written statement",
            "Evidence of plaintiff",
            "Cross-examination",
            "Arguments",
            "Framing of issues",
            "Appearance of accused",
            "Reply to interim application",
            "Mediation report",
            "Judgment",
        ]

    def clear_existing_data(self):
        """Forget every stored collection."""
        store = self.ledger.repository.store
        for key in (CASES, CLIENTS, USERS):
            store.delete(key)
            logger.info(f"Cleared collection: {key}")

    def generate_cases(self, user_id, count=40):
        """Generate cases, moving each one through a few hearing dates."""
        logger.info(f"Generating {count} cases...")
        cases = []
        today = date.today()

        for i in range(count):
            case_type = random.choice(CASE_TYPES)
            year = random.randint(today.year - 4, today.year)
            first_hearing = today - timedelta(days=random.randint(60, 400))

            case = Case(
                case_id=new_record_id(),
                user_id=user_id,
                serial_number=str(i + 1),
                case_number=f"{self.case_prefixes[case_type]}/{random.randint(1, 999)}/{year}",
                case_name_parties=f"{fake.last_name()} vs {fake.last_name()}",
                court_name=random.choice(self.courts),
                case_type=case_type,
                priority=random.choice(PRIORITY_LEVELS),
                section=f"Sec. {random.randint(1, 500)}" if case_type == "Criminal" else "",
                next_date=first_hearing.isoformat(),
                step_of_the_day=random.choice(self.steps),
                notes=fake.sentence(nb_words=10),
            )
            stored = self.ledger.save_case(user_id, None, case)

            # Each adjournment appends the superseded hearing to the history
            hearing = first_hearing
            for _ in range(random.randint(0, 5)):
                hearing = hearing + timedelta(days=random.randint(14, 75))
                edited = replace(
                    stored,
                    next_date=hearing.isoformat(),
                    step_of_the_day=random.choice(self.steps),
                    notes=fake.sentence(nb_words=10),
                    is_task_done=random.random() < 0.3,
                )
                stored = self.ledger.save_case(user_id, stored, edited)

            cases.append(stored)

        completed = [c.case_id for c in cases if random.random() < 0.15]
        if completed:
            self.ledger.bulk_complete_cases(user_id, completed)

        logger.info(f"Successfully generated {len(cases)} cases")
        return self.ledger.load_cases(user_id)

    def generate_clients(self, user_id, cases):
        """Generate clients, most of them carrying the number of one of the cases."""
        logger.info("Generating clients...")
        clients = []

        for case in cases:
            if random.random() < 0.3:
                continue

            last_contacted = None
            if random.random() < 0.8:
                last_contacted = fake.date_between(start_date="-90d", end_date="today").isoformat()

            client = Client(
                client_id=new_record_id(),
                user_id=user_id,
                name=fake.name(),
                phone=fake.phone_number()[:20],
                email=fake.email(),
                address=fake.address().replace("\n", ", "),
                notes=fake.sentence(nb_words=8),
                case_number=case.case_number,
                last_contacted=last_contacted,
            )
            result = self.ledger.save_client(user_id, client)
            clients.append(result.client)

        logger.info(f"Successfully generated {len(clients)} clients")
        return clients

    def generate_statistics(self, cases, clients):
        """Display statistics about the generated data."""
        active = len([c for c in cases if c.status == STATUS_ACTIVE])
        completed = len([c for c in cases if c.status == STATUS_COMPLETED])
        linked = len([c for c in cases if c.client_id])
        history_items = sum(len(c.history) for c in cases)

        print("\n" + "=" * 60)
        print("DUMMY DATA GENERATION COMPLETE!")
        print("=" * 60)
        print("STATISTICS:")
        print(f"  - Cases:            {len(cases):,} ({active} active, {completed} completed)")
        print(f"  - Clients:          {len(clients):,}")
        print(f"  - Linked cases:     {linked:,}")
        print(f"  - History entries:  {history_items:,}")
        print("\nCASE TYPES:")
        case_type_counts = {}
        for case in cases:
            case_type_counts[case.case_type] = case_type_counts.get(case.case_type, 0) + 1

        for case_type, count in sorted(case_type_counts.items()):
            print(f"  - {case_type}: {count}")

        print("=" * 60)

    def run(self, email, case_count=40, clear_existing=False):
        """Run the complete dummy data generation process."""
        if clear_existing:
            self.clear_existing_data()

        logger.info("Starting dummy data generation...")
        user = self.ledger.login(email, fake.name())
        logger.info(f"Generating data for user {user.email} ({user.user_id})")

        cases = self.generate_cases(user.user_id, case_count)
        clients = self.generate_clients(user.user_id, cases)

        self.generate_statistics(self.ledger.load_cases(user.user_id), clients)
        logger.info("Dummy data generation completed successfully!")
        return user


def main():
    """Main function to handle command line arguments and run the generator."""
    parser = argparse.ArgumentParser(description="Generate dummy data for the Case Ledger")
    parser.add_argument("--clear", action="store_true", help="Remove existing data before generating new data")
    parser.add_argument("--count", type=int, default=40, help="Number of cases to generate (default: 40)")
    parser.add_argument("--email", default="advocate@example.com", help="Login e-mail of the generated user")
    parser.add_argument(
        "--env", default=os.getenv("FLASK_ENV", "development"), help="Configuration to use (default: development)"
    )
    parser.add_argument("--seed", type=int, help="Seed for reproducible data")

    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)
        Faker.seed(args.seed)

    config_class = config[args.env]
    config_class.validate_config()
    store = create_store(config_class)
    if isinstance(store, PostgresStore):
        store.ensure_schema()

    generator = DummyDataGenerator(
        CaseLedger(RecordRepository(store), case_insensitive_linking=config_class.LINK_CASE_INSENSITIVE)
    )

    try:
        user = generator.run(args.email, case_count=args.count, clear_existing=args.clear)
    except Exception as e:
        logger.error(f"Error during data generation: {e}")
        print("\n[ERROR] Failed to generate dummy data. Check the logs above.")
        sys.exit(1)
    finally:
        if isinstance(store, PostgresStore):
            store.db.close_all_connections()

    print("\n[SUCCESS] Successfully generated dummy data!")
    print(f"[INFO] Send X-User-Id: {user.user_id} to act as {user.email}")
    print("[INFO] You can now run: python run.py")
    sys.exit(0)


if __name__ == "__main__":
    main()
