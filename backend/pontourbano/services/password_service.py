"""
Ponto Urbano Backend — Password Hashing
=========================================

What:  bcrypt hashing and verification through passlib's CryptContext.
Why:   Salted, adaptive hashing; the cost factor (BCRYPT_ROUNDS, default 10)
       can be raised later and old hashes keep verifying.
How:   bcrypt is deliberately slow, so both operations run in the threadpool.

Plaintext passwords never leave this module's arguments: they are not logged,
stored, or echoed in errors.
"""

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool


class PasswordHasher:
    """Thin async wrapper around a bcrypt CryptContext."""

    def __init__(self, rounds: int = 10):
        self.context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    async def hash(self, password: str) -> str:
        return await run_in_threadpool(self.context.hash, password)

    async def verify(self, password: str, password_hash: str) -> bool:
        """False for a wrong password and for a corrupt/unknown hash alike."""
        try:
            return await run_in_threadpool(self.context.verify, password, password_hash)
        except ValueError:
            return False

    async def dummy_verify(self) -> None:
        """
        Burn the same CPU time as a real verify.

        Called when the email is unknown, so "no such account" and
        "wrong password" take comparable time as well as returning the same error.
        """
        await run_in_threadpool(self.context.dummy_verify)
