from fastapi import APIRouter, Depends, status

from core.auth import Session, SessionRegistry, current_session, get_session_registry
from schemas.auth import LoginRequest, LoginResponse, SessionRead

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    session = registry.open(payload.username, payload.password)
    return LoginResponse(access_token=session.token, session=SessionRead.from_session(session))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session: Session = Depends(current_session),
    registry: SessionRegistry = Depends(get_session_registry),
):
    registry.close(session.token)


@router.get("/me", response_model=SessionRead)
async def me(session: Session = Depends(current_session)):
    return SessionRead.from_session(session)
