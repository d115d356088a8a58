"""
Database Schemas

MongoDB collection schemas as Pydantic models.
Model name is converted to lowercase for the collection name:
- User -> "user" collection
- Post -> "post" collection
"""

from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Category(str, Enum):
    AGRICULTURE = "Agriculture"
    BUSINESS = "Business"
    EDUCATION = "Education"
    ENTERTAINMENT = "Entertainment"
    ART = "Art"
    INVESTMENT = "Investment"
    WEATHER = "Weather"

    @classmethod
    def values(cls) -> list[str]:
        return [c.value for c in cls]


class User(BaseModel):
    """
    Registered users
    Collection name: "user"
    """
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Unique, lower-cased email address")
    password_hash: str = Field(..., description="BCrypt password hash")
    avatar: Optional[str] = Field(None, description="Blob name of the avatar image")
    post_count: int = Field(0, description="Number of posts created by this user")


class Post(BaseModel):
    """
    Blog posts
    Collection name: "post"
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    title: str
    category: Category
    description: str
    creator: ObjectId = Field(..., description="Id of the authoring user")
    thumbnail: str = Field(..., description="Blob name of the thumbnail image")
