"""
Create or promote an administrator account.

    python scripts/create_admin.py admin@campus.edu "Events Office" 's3cret-pass'

Administrators approve, reject and cancel events; there is no API to grant
the role, so the first one is bootstrapped here.
"""

import asyncio
import sys

from campus_events.core.logging import setup_logging
from campus_events.db.session import AsyncSessionLocal, engine
from campus_events.services.auth_service import ensure_admin


async def main(email: str, name: str, password: str) -> None:
    async with AsyncSessionLocal() as db:
        user = await ensure_admin(db, email, name, password)
        await db.commit()
    await engine.dispose()
    print(f"{user.email} is an administrator (id={user.id})")


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(2)
    setup_logging()
    asyncio.run(main(*sys.argv[1:]))
