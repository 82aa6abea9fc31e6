"""
RecipeBox Backend — Password Hashing
======================================

bcrypt hashing and verification. Both are CPU-bound (~250ms at 12 rounds),
so the async helpers run them in Starlette's threadpool and the event loop
keeps serving other requests meanwhile.
"""

import bcrypt
from starlette.concurrency import run_in_threadpool

# bcrypt only looks at the first 72 bytes of the password
MAX_PASSWORD_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:MAX_PASSWORD_BYTES]


def hash_password_sync(plain: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password_sync(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


async def hash_password(plain: str, rounds: int = 12) -> str:
    return await run_in_threadpool(hash_password_sync, plain, rounds)


async def verify_password(plain: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password_sync, plain, hashed)
