# backoffice/db/seed.py
import asyncio
import logging

from faker import Faker
from tqdm import tqdm

from backoffice.core.config import settings
from backoffice.core.cpf import canonicalize_cpf
from backoffice.core.exceptions import DuplicateIdentityException
from backoffice.core.security import BcryptPasswordHasher
from backoffice.db.session import connect_db_pool, get_pool, close_db_pool
from backoffice.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

fake = Faker("pt_BR")

NUM_USERS = 50
INACTIVE_RATIO = 0.1
DEMO_PASSWORD = "Backoffice@123"


def build_user(hashed_password: str) -> dict:
    first_name = fake.first_name()[:50]
    last_name = fake.last_name()[:50]
    return {
        "first_name": first_name,
        "last_name": last_name,
        "email": fake.unique.email().lower(),
        "cpf": canonicalize_cpf(fake.unique.cpf()),
        "hashed_password": hashed_password,
        "is_active": fake.random.random() >= INACTIVE_RATIO,
    }


async def seed():
    await connect_db_pool()
    pool = await get_pool()
    if pool is None:
        raise RuntimeError("Database pool could not be initialized")

    # one hash for every demo account; bcrypt is too slow to run per user here
    hashed_password = BcryptPasswordHasher(rounds=settings.BCRYPT_ROUNDS).hash(DEMO_PASSWORD)
    created = skipped = 0

    async with pool.acquire() as conn:
        repo = UserRepository(conn)
        for _ in tqdm(range(NUM_USERS), desc="Creating users"):
            try:
                await repo.create(build_user(hashed_password))
                created += 1
            except DuplicateIdentityException:
                skipped += 1

    logger.info(f"Seed finished: {created} users created, {skipped} duplicates skipped.")
    await close_db_pool()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())
