"""
Bootstrap a global administrator.

Creates the user named by ADMIN_EMAIL with the ADMIN global role, or promotes
the existing account, and records the event in the activity log.

Usage:
    ADMIN_EMAIL=admin@example.com python -m scripts.seed_admin
"""
import asyncio
from sqlalchemy import select

from groupguard.core import config
from groupguard.core.database.engine import AsyncSessionLocal, init_db
from groupguard.features.activity.recorder import get_activity_recorder
from groupguard.features.users.auth import issue_token
from groupguard.features.users.models import GlobalRole, User
from groupguard.utils import get_logger


log = get_logger(__name__)


async def seed_admin(email: str, name: str) -> User:
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is None:
            user = User(email=email, name=name, global_role=GlobalRole.ADMIN)
            db.add(user)
            log.info(f"Creating global administrator {email}")
        elif user.global_role != GlobalRole.ADMIN:
            user.global_role = GlobalRole.ADMIN
            log.info(f"Promoting {email} to global administrator")
        else:
            log.info(f"{email} is already a global administrator")
            return user

        await db.commit()
        await db.refresh(user)

    await get_activity_recorder().log_admin_user_created(user.id, user.email, created_by="seed_admin", name=user.name)
    return user


async def main():
    if not config.ADMIN_EMAIL:
        raise SystemExit("ADMIN_EMAIL is not set")

    log.info("Initializing database tables...")
    await init_db()

    user = await seed_admin(config.ADMIN_EMAIL, config.ADMIN_NAME)
    log.info(f"Global administrator ready: id={user.id}")
    log.info(f"Development token: {issue_token(user.id)}")


if __name__ == "__main__":
    asyncio.run(main())
