from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.db import SessionLocal
from app.services.gateway import PersistenceGateway
from app.services.identity import verifier, IdentityRejected
from app.services.mutations import MutationExecutor

auth_scheme = HTTPBearer(auto_error=False)

def get_gateway() -> PersistenceGateway:
    return PersistenceGateway(SessionLocal)

def get_executor(gateway: PersistenceGateway = Depends(get_gateway)) -> MutationExecutor:
    return MutationExecutor(gateway)

def require_auth(creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme)) -> str:
    if not creds:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        return verifier.verify(creds.credentials)
    except IdentityRejected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
