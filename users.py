import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, EmailStr
from pymongo.errors import DuplicateKeyError

import settings
from errors import BlobNotFound, InternalError, NotFoundError, ValidationError
from schemas import User
from security import TokenData, create_access_token, get_current_user, get_password_hash, verify_password
from storage import BlobStore, get_blob_store
from stores import UserStore, get_user_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

MIN_PASSWORD_LENGTH = 6


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    password2: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class EditUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    confirm_new_password: Optional[str] = None


class PublicUser(BaseModel):
    id: str
    name: Optional[str] = None
    email: EmailStr
    avatar: Optional[str] = None
    post_count: int = 0


class RegisterResponse(BaseModel):
    message: str
    user: PublicUser


class LoginResponse(BaseModel):
    token: str
    id: str
    name: Optional[str] = None


def public_user(doc: Dict[str, Any]) -> PublicUser:
    return PublicUser(
        id=str(doc.get("_id")),
        name=doc.get("name"),
        email=doc.get("email"),
        avatar=doc.get("avatar"),
        post_count=doc.get("post_count", 0),
    )


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(payload: RegisterRequest, users: UserStore = Depends(get_user_store)):
    if not payload.name or not payload.email or not payload.password or not payload.password2:
        raise ValidationError("Fill in all fields.")
    if payload.password != payload.password2:
        raise ValidationError("Passwords do not match.")
    if len(payload.password.strip()) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.")

    email = payload.email.lower()
    if users.get_by_email(email):
        raise ValidationError("Email already exists.")

    user = User(name=payload.name, email=email, password_hash=get_password_hash(payload.password))
    try:
        doc = users.create(user)
    except DuplicateKeyError:
        raise ValidationError("Email already exists.")

    logger.info(f"Registered user {email} (ID: {doc['_id']})")
    return RegisterResponse(message=f"New user {email} registered.", user=public_user(doc))


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, users: UserStore = Depends(get_user_store)):
    if not payload.email or not payload.password:
        raise ValidationError("Fill in all fields.")

    user = users.get_by_email(payload.email)
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise ValidationError("Invalid email or password.")

    user_id = str(user["_id"])
    token = create_access_token(user_id, user.get("name"))
    logger.info(f"User {user_id} logged in")
    return LoginResponse(token=token, id=user_id, name=user.get("name"))


@router.get("/authors", response_model=List[PublicUser])
async def get_authors(users: UserStore = Depends(get_user_store)):
    return [public_user(doc) for doc in users.list()]


@router.post("/change-avatar", response_model=PublicUser)
async def change_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: TokenData = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
    blobs: BlobStore = Depends(get_blob_store),
):
    if avatar is None or not avatar.filename:
        raise ValidationError("Choose an image!")

    user = users.get(current_user.user_id)
    if not user:
        raise NotFoundError("User not found!")

    old_avatar = user.get("avatar")
    if old_avatar:
        try:
            blobs.remove(old_avatar)
        except BlobNotFound:
            logger.warning(f"Old avatar {old_avatar} of user {current_user.user_id} was already gone")
        except InternalError:
            raise InternalError("Could not delete old avatar")

    data = await avatar.read()
    new_name = blobs.store(
        data, avatar.filename, settings.AVATAR_MAX_BYTES,
        "Image too big! Image size should be less than 2.5 MB",
    )
    updated = users.update(current_user.user_id, {"avatar": new_name})
    if not updated:
        blobs.remove(new_name)
        raise NotFoundError("User not found!")

    logger.info(f"User {current_user.user_id} changed avatar to {new_name}")
    return public_user(updated)


@router.post("/edit-user", response_model=PublicUser)
async def edit_user(
    payload: EditUserRequest,
    current_user: TokenData = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
):
    if not all([payload.name, payload.email, payload.current_password,
                payload.new_password, payload.confirm_new_password]):
        raise ValidationError("Fill all fields")

    user = users.get(current_user.user_id)
    if not user:
        raise NotFoundError("User not found")

    email = payload.email.lower()
    existing = users.get_by_email(email)
    if existing and str(existing["_id"]) != current_user.user_id:
        raise ValidationError("Email already exists")

    if not verify_password(payload.current_password, user.get("password_hash", "")):
        raise ValidationError("Invalid current password")
    if payload.new_password != payload.confirm_new_password:
        raise ValidationError("New passwords do not match")
    if len(payload.new_password.strip()) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.")

    fields = {"name": payload.name, "email": email, "password_hash": get_password_hash(payload.new_password)}
    try:
        updated = users.update(current_user.user_id, fields)
    except DuplicateKeyError:
        raise ValidationError("Email already exists")
    if not updated:
        raise NotFoundError("User not found")

    logger.info(f"User {current_user.user_id} updated profile")
    return public_user(updated)


@router.get("/{user_id}", response_model=PublicUser)
async def get_user(
    user_id: str,
    current_user: TokenData = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
):
    user = users.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    return public_user(user)
