"""Authentication route declarations: signup, login and logout."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from dependencies import get_client_ip, get_db, get_notifier
from services.account_service import AccountServiceError, authenticate, create_account
from services.discord_service import DiscordNotifier
from sessions import ACCOUNT_KEY, BOUND_IP_KEY, LOGGED_IN_KEY, cycle_session, invalidate_session

router = APIRouter(prefix="/auth", tags=["auth"])


class SignupRequest(BaseModel):
	username: str = Field(..., min_length=1, max_length=100)
	email: str = Field(..., min_length=3, max_length=255)
	password: str = Field(..., min_length=8, max_length=256)
	invite: str | None = Field(default=None, max_length=64)


class LoginRequest(BaseModel):
	username: str = Field(..., min_length=1, max_length=100)
	password: str = Field(..., min_length=1, max_length=256)


@router.post("/signup", status_code=status.HTTP_201_CREATED, summary="Create an account")
async def signup(
	payload: SignupRequest,
	db: Session = Depends(get_db),
	notifier: DiscordNotifier = Depends(get_notifier),
) -> dict:
	"""Create the account, then post the signup audit entry before responding."""
	try:
		account = await run_in_threadpool(
			create_account,
			db,
			username=payload.username,
			email=payload.email,
			password=payload.password,
			invite_code=payload.invite,
		)
	except AccountServiceError as exc:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

	await notifier.notify_account_created(db, account)
	return {"message": "Account created", "user": account.serialize()}


@router.post("/login", summary="Log in and bind the session to this IP")
async def login(
	payload: LoginRequest,
	request: Request,
	db: Session = Depends(get_db),
	notifier: DiscordNotifier = Depends(get_notifier),
	ip: str = Depends(get_client_ip),
) -> dict:
	account = await run_in_threadpool(authenticate, db, payload.username, payload.password)
	if account is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")
	if account.suspended and not account.admin:
		raise HTTPException(
			status_code=status.HTTP_403_FORBIDDEN,
			detail=f"Your account was suspended for the following reason: {account.suspension_reason}",
		)

	request.session.clear()
	request.session.update({LOGGED_IN_KEY: True, ACCOUNT_KEY: str(account.id), BOUND_IP_KEY: ip})
	cycle_session(request)
	notifier.dispatch(notifier.notify_login(account, ip, request.headers.get("user-agent", "")), "login")
	return {"message": "Logged in", "user": account.serialize()}


@router.post("/logout", summary="Destroy the current session")
def logout(request: Request) -> dict[str, str]:
	invalidate_session(request)
	return {"message": "Logged out"}
