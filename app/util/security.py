from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from app.services.identity import verifier

ph = PasswordHasher()

def hash_pw(p: str) -> str:
    return ph.hash(p)

def verify_pw(hashv: str, p: str) -> bool:
    try:
        ph.verify(hashv, p)
        return True
    except (VerificationError, InvalidHashError):
        return False

def create_token(sub: str) -> str:
    return verifier.issue(sub)
