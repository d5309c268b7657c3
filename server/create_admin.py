"""
Create an admin account, or promote an existing one.

    python create_admin.py admin@example.com "Site Admin" 'Str0ngPassword'
"""
import asyncio
import sys

from sqlalchemy.future import select

from nutramitra.auth.passwords import hash_password, password_problem
from nutramitra.db.models import AsyncSessionLocal, User, engine, init_db


async def create_admin(email: str, name: str, password: str = None):
    email = email.strip().lower()
    await init_db()
    async with AsyncSessionLocal() as db:
        res = await db.execute(select(User).where(User.email == email))
        user = res.scalars().first()

        if user:
            user.role = "admin"
            user.is_verified = True
            if password:
                user.hashed_password, user.salt = hash_password(password)
            print(f"Promoted {email} to admin.")
        else:
            if not password:
                raise SystemExit("A password is required for a new account.")
            hashed, salt = hash_password(password)
            db.add(User(
                name=name,
                email=email,
                hashed_password=hashed,
                salt=salt,
                role="admin",
                is_verified=True,
            ))
            print(f"Created admin {email}.")
        await db.commit()
    await engine.dispose()

if __name__ == "__main__":
    if len(sys.argv) < 3:
        raise SystemExit(__doc__)
    password = sys.argv[3] if len(sys.argv) > 3 else None
    if password and password_problem(password):
        raise SystemExit(password_problem(password))
    asyncio.run(create_admin(sys.argv[1], sys.argv[2], password))
