"""
Database seeding for the library lending service.

Generates a realistic inventory with Faker and runs some lending traffic
through InventoryService, so seeded data obeys the same rules as live data:
every borrow record comes from a real borrow, every return from a real return.

Usage:
    library-lending-seed [--books 50] [--database-url sqlite:///data/library.db] [--drop-existing]
"""

import argparse
import logging
import random
import sys

from faker import Faker

from ..errors import InvalidStateError
from ..inventory import InventoryService
from ..models.book import MIN_PUBLICATION_YEAR
from ..models.borrow_record import utc_now
from ..models.views import CreateBookRequest
from .session import DatabaseManager

logger = logging.getLogger(__name__)


def generate_isbn13(rng: random.Random) -> str:
    """Generate a valid ISBN-13 (978 prefix, correct check digit)."""
    body = "978" + "".join(str(rng.randint(0, 9)) for _ in range(9))
    total = sum(int(digit) * (3 if i % 2 else 1) for i, digit in enumerate(body))
    return body + str((10 - total % 10) % 10)


def generate_book_request(fake: Faker, rng: random.Random) -> CreateBookRequest:
    title = fake.catch_phrase()[:200]
    return CreateBookRequest(
        title=title,
        author=fake.name(),
        year=rng.randint(MIN_PUBLICATION_YEAR + 300, utc_now().year),
        isbn=generate_isbn13(rng),
        copies=rng.randint(0, 5),
    )


def seed_inventory(
    service: InventoryService, book_count: int, seed: int = 42
) -> dict[str, int]:
    """
    Create `book_count` books and simulate borrowing on them.

    Returns:
        Counts of books created, borrows and returns performed
    """
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)

    stats = {"books": 0, "borrows": 0, "returns": 0}
    for _ in range(book_count):
        book_id = service.create(generate_book_request(fake, rng))
        stats["books"] += 1

        for _ in range(rng.randint(0, 4)):
            try:
                service.borrow(book_id)
                stats["borrows"] += 1
            except InvalidStateError:
                break
            if rng.random() < 0.6 and service.return_book(book_id) is not None:
                stats["returns"] += 1

    logger.info(
        "Seeded %d books, %d borrows, %d returns",
        stats["books"],
        stats["borrows"],
        stats["returns"],
    )
    return stats


def main() -> None:
    """Entry point for the `library-lending-seed` command."""
    parser = argparse.ArgumentParser(description="Seed the library lending database")
    parser.add_argument("--books", type=int, default=50, help="Number of books to create")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--database-url", help="Override the configured database URL")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before seeding",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    db_manager = DatabaseManager(args.database_url)
    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    db_manager.init_database(drop_existing=args.drop_existing)
    try:
        seed_inventory(InventoryService(db_manager), args.books, seed=args.seed)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
