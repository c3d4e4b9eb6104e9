"""
Database Schemas for App

Each profile type lives in its own MongoDB collection. The four collection
models share ProfileBase; request bodies are defined at the bottom.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProfileType(str, Enum):
    ESCORT = "escort"
    MASSEUSE = "masseuse"
    OF_MODEL = "of-model"
    SPA = "spa"


class PackageType(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    ELITE = "elite"


class InteractionType(str, Enum):
    PHONE_COPY = "phone_copy"
    CALL = "call"
    WHATSAPP = "whatsapp"
    PROFILE_VIEW = "profile_view"
    MESSAGE = "message"


# Listing sort priority; profiles without a package rank last.
PACKAGE_PRIORITY: Dict[str, int] = {
    PackageType.ELITE.value: 3,
    PackageType.PREMIUM.value: 2,
    PackageType.BASIC.value: 1,
}


# -----------------
# Embedded documents
# -----------------
class Document(BaseModel):
    model_config = ConfigDict(use_enum_values=True)


class CurrentPackage(Document):
    packageType: Optional[PackageType] = None
    status: str = Field("inactive", description="active | inactive | expired")
    expiresAt: Optional[datetime] = None


class Location(Document):
    county: Optional[str] = None
    location: Optional[str] = None
    area: Optional[str] = None


class Verification(Document):
    isVerified: bool = False


class InteractionEvent(Document):
    type: InteractionType
    timestamp: datetime


class Analytics(Document):
    views: int = 0
    interactions: int = 0
    phone_copys: int = 0
    calls: int = 0
    whatsapps: int = 0
    profile_views: int = 0
    messages: int = 0
    lastViewed: Optional[datetime] = None
    interactionHistory: List[InteractionEvent] = Field(default_factory=list)


# -----------------
# Profile collections
# -----------------
class ProfileBase(Document):
    username: str = Field(..., description="Lowercase, unique across all profile collections")
    email: str = Field(..., description="Lowercase, unique across all profile collections")
    password: str = Field(..., description="bcrypt hash")
    userType: ProfileType
    isActive: bool = True
    isDeactivated: bool = False
    currentPackage: CurrentPackage = Field(default_factory=CurrentPackage)
    location: Location = Field(default_factory=Location)
    verification: Verification = Field(default_factory=Verification)
    analytics: Analytics = Field(default_factory=Analytics)
    createdAt: Optional[datetime] = None
    paymentHistory: List[Dict[str, Any]] = Field(default_factory=list)
    processedTransactions: List[str] = Field(default_factory=list)


class PersonalProfile(ProfileBase):
    gender: Optional[str] = None
    bodyType: Optional[str] = None
    breastSize: Optional[str] = None
    profile: Dict[str, Any] = Field(default_factory=dict)


class Escort(PersonalProfile):
    userType: ProfileType = ProfileType.ESCORT


class Masseuse(PersonalProfile):
    userType: ProfileType = ProfileType.MASSEUSE


class OFModel(PersonalProfile):
    userType: ProfileType = ProfileType.OF_MODEL


class Spa(ProfileBase):
    userType: ProfileType = ProfileType.SPA
    business: Dict[str, Any] = Field(default_factory=dict)


# -----------------
# Request bodies
# -----------------
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    userType: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class InteractionRequest(BaseModel):
    profileId: str = Field(..., min_length=1)
    interactionType: str = Field(..., min_length=1)
