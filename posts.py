"""
Post endpoints.

Creating, editing and deleting a post keeps the thumbnail file on disk in
step with the post record:
- create: store the file, then insert the record; the file is removed again
  if the insert fails.
- edit with a new thumbnail: remove the old file, store the new one, then
  update the record.
- delete: remove the file, then the record. The record survives if the file
  cannot be removed.
A file that is already missing never blocks the record operation.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from starlette.datastructures import UploadFile as StarletteUploadFile

import settings
from database import to_object_id
from errors import AuthorizationError, BlobNotFound, InternalError, InvalidToken, NotFoundError, ValidationError
from schemas import Category, Post
from security import TokenData, get_current_user
from storage import BlobStore, get_blob_store
from stores import PostStore, UserStore, get_post_store, get_user_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])

MIN_EDIT_DESCRIPTION_LENGTH = 12
THUMBNAIL_TOO_BIG = "Thumbnail is too big"


class PostOut(BaseModel):
    id: str
    title: str
    category: str
    description: str
    creator: str
    thumbnail: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str


def post_out(doc: Dict[str, Any]) -> PostOut:
    return PostOut(
        id=str(doc["_id"]),
        title=doc.get("title", ""),
        category=doc.get("category", ""),
        description=doc.get("description", ""),
        creator=str(doc.get("creator", "")),
        thumbnail=doc.get("thumbnail", ""),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


def check_category(category: str) -> None:
    if category not in Category.values():
        raise ValidationError(
            f"Category {category!r} is not supported, choose one of: {', '.join(Category.values())}"
        )


def check_owner(post: Dict[str, Any], current_user: TokenData) -> None:
    if str(post.get("creator")) != current_user.user_id:
        raise AuthorizationError("Not authorized to modify this post")


def has_file(upload: Any) -> bool:
    return isinstance(upload, StarletteUploadFile) and bool(upload.filename)


async def read_edit_payload(request: Request) -> Tuple[Dict[str, Any], Optional[StarletteUploadFile]]:
    """Accept either a multipart/urlencoded form or a JSON body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        thumbnail = form.get("thumbnail")
        fields = {key: value for key, value in form.items() if isinstance(value, str)}
        return fields, thumbnail if has_file(thumbnail) else None

    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Fill all data")
    if not isinstance(body, dict):
        raise ValidationError("Fill all data")
    return body, None


@router.get("", response_model=List[PostOut])
async def get_posts(posts: PostStore = Depends(get_post_store)):
    return [post_out(doc) for doc in posts.list()]


@router.get("/categories/{category}", response_model=List[PostOut])
async def get_category_posts(category: str, posts: PostStore = Depends(get_post_store)):
    return [post_out(doc) for doc in posts.list_by_category(category)]


@router.get("/users/{user_id}", response_model=List[PostOut])
async def get_user_posts(user_id: str, posts: PostStore = Depends(get_post_store)):
    return [post_out(doc) for doc in posts.list_by_creator(user_id)]


@router.get("/{post_id}", response_model=PostOut)
async def get_post(post_id: str, posts: PostStore = Depends(get_post_store)):
    post = posts.get(post_id)
    if not post:
        raise NotFoundError("Post not found")
    return post_out(post)


@router.post("", response_model=PostOut, status_code=201)
async def create_post(
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: TokenData = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    users: UserStore = Depends(get_user_store),
    blobs: BlobStore = Depends(get_blob_store),
):
    creator = to_object_id(current_user.user_id)
    if creator is None:
        raise InvalidToken("Invalid token.")
    if not title or not category or not description or not has_file(thumbnail):
        raise ValidationError("Fill all data and choose thumbnail")
    check_category(category)

    data = await thumbnail.read()
    stored_name = blobs.store(data, thumbnail.filename, settings.THUMBNAIL_MAX_BYTES, THUMBNAIL_TOO_BIG)

    try:
        post = posts.create(Post(
            title=title,
            category=category,
            description=description,
            creator=creator,
            thumbnail=stored_name,
        ))
    except PyMongoError as e:
        logger.error(f"Post insert failed, removing orphaned thumbnail {stored_name}: {e}")
        try:
            blobs.remove(stored_name)
        except BlobNotFound:
            pass
        raise InternalError("Post couldn't be created")

    users.increment_post_count(current_user.user_id, 1)
    logger.info(f"Post {post['_id']} created by user {current_user.user_id}")
    return post_out(post)


@router.patch("/{post_id}", response_model=PostOut)
async def edit_post(
    post_id: str,
    request: Request,
    current_user: TokenData = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    blobs: BlobStore = Depends(get_blob_store),
):
    fields, thumbnail = await read_edit_payload(request)
    title = fields.get("title")
    category = fields.get("category")
    description = fields.get("description")

    if not all(isinstance(value, str) for value in (title, category, description)):
        raise ValidationError("Fill all data")
    if not title or not category or len(description) < MIN_EDIT_DESCRIPTION_LENGTH:
        raise ValidationError("Fill all data")
    check_category(category)
    changes = {"title": title, "category": category, "description": description}

    if thumbnail is None:
        if settings.ENFORCE_EDIT_OWNERSHIP:
            post = posts.get(post_id)
            if not post:
                raise NotFoundError("Post not found")
            check_owner(post, current_user)
        updated = posts.update(post_id, changes)
        if not updated:
            raise NotFoundError("Post not found")
        logger.info(f"Post {post_id} edited by user {current_user.user_id}")
        return post_out(updated)

    # Checked up front: the old thumbnail is removed before the new one is stored.
    data = await thumbnail.read()
    blobs.check_size(len(data), settings.THUMBNAIL_MAX_BYTES, THUMBNAIL_TOO_BIG)

    old_post = posts.get(post_id)
    if not old_post:
        raise NotFoundError("Post not found")
    if settings.ENFORCE_EDIT_OWNERSHIP:
        check_owner(old_post, current_user)

    try:
        blobs.remove(old_post["thumbnail"])
    except BlobNotFound:
        logger.warning(f"Old thumbnail {old_post['thumbnail']} of post {post_id} was already gone")
    except InternalError:
        raise InternalError("Failed to delete old thumbnail")

    new_name = blobs.store(data, thumbnail.filename, settings.THUMBNAIL_MAX_BYTES, THUMBNAIL_TOO_BIG)

    updated = posts.update(post_id, dict(changes, thumbnail=new_name))
    if not updated:
        logger.error(f"Post {post_id} vanished during edit, removing new thumbnail {new_name}")
        try:
            blobs.remove(new_name)
        except BlobNotFound:
            pass
        raise NotFoundError("Post not found")

    logger.info(f"Post {post_id} edited by user {current_user.user_id} with new thumbnail {new_name}")
    return post_out(updated)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    current_user: TokenData = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    users: UserStore = Depends(get_user_store),
    blobs: BlobStore = Depends(get_blob_store),
):
    post = posts.get(post_id)
    if not post:
        raise NotFoundError("Post not found")
    if str(post.get("creator")) != current_user.user_id:
        raise AuthorizationError("Not authorized to delete this post")

    try:
        blobs.remove(post["thumbnail"])
    except BlobNotFound:
        logger.warning(f"Thumbnail {post['thumbnail']} of post {post_id} was already gone")
    except InternalError:
        raise InternalError("Failed to delete thumbnail")

    if not posts.delete(post_id):
        raise NotFoundError("Post not found")
    users.increment_post_count(post["creator"], -1)

    logger.info(f"Post {post_id} deleted by user {current_user.user_id}")
    return MessageResponse(message=f"Post {post_id} deleted successfully")
