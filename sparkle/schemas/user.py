from pydantic import AliasChoices, BaseModel, Field, model_validator
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from sparkle.schemas.base import CamelModel


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    NON_BINARY = "non-binary"


class Location(CamelModel):
    lat: float = Field(validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(validation_alias=AliasChoices("lng", "longitude"))


class AgeRange(CamelModel):
    min: int = Field(18, ge=18, le=100)
    max: int = Field(100, ge=18, le=100)

    @model_validator(mode="after")
    def _min_not_above_max(self) -> "AgeRange":
        if self.min > self.max:
            raise ValueError(f"Age range min ({self.min}) exceeds max ({self.max})")
        return self


class Preferences(CamelModel):
    age_range: AgeRange = Field(default_factory=AgeRange)
    interested_in_gender: Union[Gender, list[Gender]] = Field(default_factory=list)


class User(CamelModel):
    id: str
    email: str
    name: str
    age: Optional[int] = None
    gender: Optional[Gender] = None
    bio: Optional[str] = None
    interests: list[str] = []
    location: Optional[Location] = None
    preferences: Optional[Preferences] = None
    profile_picture_url: Optional[str] = None
    is_active: Optional[bool] = None
    is_profile_complete: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginRequest(CamelModel):
    email: str
    password: str


class RegisterRequest(CamelModel):
    email: str
    password: str
    name: str
    confirm_password: Optional[str] = Field(None, exclude=True)


class SetupProfileRequest(CamelModel):
    age: int
    gender: Gender
    bio: str
    interests: list[str]
    latitude: float
    longitude: float
    min_age: int = 18
    max_age: int = 50
    interested_in_gender: Union[Gender, list[Gender]]
    photo_url: str


class UpdateProfileRequest(CamelModel):
    age: Optional[int] = None
    gender: Optional[Gender] = None
    bio: Optional[str] = None
    interests: Optional[list[str]] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    interested_in_gender: Optional[Union[Gender, list[Gender]]] = None
    photo_url: Optional[str] = None


class AuthResponse(BaseModel):
    access_token: str
    user: User


class ProfileResponse(CamelModel):
    message: Optional[str] = None
    user: User


class PhotoUpload(CamelModel):
    url: str
    user: Optional[User] = None
