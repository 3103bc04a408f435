from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr

from identity_hub.api import read_upload, respond
from identity_hub.models.user import User
from identity_hub.services import auth as auth_service
from identity_hub.services.aggregation import assemble_user
from identity_hub.services.rate_limit import limit_requests
from identity_hub.services.token import generate_auth_tokens
from identity_hub.services.users import create_user
from identity_hub.utils.base import Actor, Ok, unwrap


router = APIRouter(dependencies=[Depends(limit_requests())])


@router.post("/register")
def register(
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    phone: Optional[str] = Form(None),
    picture: Optional[UploadFile] = File(None),
):
    """PUBLIC: Self-registration; the account gets the default role."""
    data = {"name": name, "email": email, "password": password, "phone": phone}
    return respond(create_user(Actor.system(), data, read_upload(picture)))


@router.post("/login")
def login(form_data: OAuth2PasswordRequestForm = Depends()):
    """PUBLIC: Email (as `username`) and password login."""
    user: User = unwrap(auth_service.login_with_email_and_password(form_data.username, form_data.password))
    tokens = unwrap(generate_auth_tokens(user))
    return respond(Ok({"user": assemble_user(user.uid), "tokens": tokens}, message="Login successful."))


class RefreshTokenBody(BaseModel):
    refresh_token: str


@router.post("/logout")
def logout(body: RefreshTokenBody):
    """PUBLIC: Drop the refresh token record."""
    return respond(auth_service.logout(body.refresh_token))


@router.post("/refresh-tokens")
def refresh_tokens(body: RefreshTokenBody):
    """PUBLIC: Rotate a refresh token into a new access/refresh pair."""
    return respond(auth_service.refresh_auth(body.refresh_token))


class ForgotPasswordBody(BaseModel):
    email: EmailStr


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordBody):
    return respond(auth_service.forgot_password(body.email))


class ResetPasswordBody(BaseModel):
    password: str


@router.post("/reset-password")
def reset_password(body: ResetPasswordBody, token: str = Query(...)):
    return respond(auth_service.reset_password(token, body.password))


@router.post("/send-verification-email")
def send_verification_email(current_user: User = Depends(auth_service.get_current_user)):
    """PROTECTED: Email a fresh verification link to the caller."""
    return respond(auth_service.send_verification_email(current_user))


@router.post("/verify-email")
def verify_email(token: str = Query(...)):
    return respond(auth_service.verify_email(token))
