"""Request and response schemas.

Request bodies are validated here before any route logic runs. Validators
raise ``PydanticCustomError`` with an upper-case type; that type becomes the
``code`` of the 400 response (see ``errors.validation_error_code``).
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

HEX_COLOR_CREATE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
HEX_COLOR_UPDATE = re.compile(r"^#([A-Fa-f0-9]{3}|[A-Fa-f0-9]{6}|[A-Fa-f0-9]{8})$")
MAX_BATCH_TEXTS = 1000


def _required_text(value: Optional[str], code: str, message: str) -> str:
    if value is None or not value.strip():
        raise PydanticCustomError(code, message)
    return value.strip()


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _unit_interval(value: Optional[float], code: str, message: str) -> Optional[float]:
    if value is not None and not 0 <= value <= 1:
        raise PydanticCustomError(code, message)
    return value


# ---------------- Users ---------------- #


class UserCreate(BaseModel):
    email: str
    name: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _required_text(v, "MISSING_EMAIL", "Email is required and cannot be empty").lower()

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return _required_text(v, "MISSING_NAME", "Name is required and cannot be empty")

    @field_validator("password")
    @classmethod
    def _password(cls, v):
        _required_text(v, "MISSING_PASSWORD", "Password is required and cannot be empty")
        return v


class UserUpdate(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _required_text(v, "INVALID_EMAIL", "Valid email is required").lower()

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return _required_text(v, "INVALID_NAME", "Valid name is required")

    @field_validator("password")
    @classmethod
    def _password(cls, v):
        if v is None or len(v) < 6:
            raise PydanticCustomError("INVALID_PASSWORD", "Password must be at least 6 characters")
        return v


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


# ---------------- Categories ---------------- #


class CategoryCreate(BaseModel):
    name: str
    color_hex: str
    description: Optional[str] = None
    icon: Optional[str] = None
    user_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return _required_text(v, "MISSING_NAME", "Name is required and cannot be empty")

    @field_validator("color_hex")
    @classmethod
    def _color(cls, v):
        v = _required_text(v, "MISSING_COLOR_HEX", "Color hex is required")
        if not HEX_COLOR_CREATE.match(v):
            raise PydanticCustomError(
                "INVALID_COLOR_HEX", "Invalid color hex format. Expected format: #RRGGBB or #RGB"
            )
        return v

    @field_validator("description", "icon")
    @classmethod
    def _strip(cls, v):
        return _optional_text(v)


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    color_hex: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    user_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return _required_text(v, "INVALID_NAME", "Name cannot be empty")

    @field_validator("color_hex")
    @classmethod
    def _color(cls, v):
        if v is None or not HEX_COLOR_UPDATE.match(v.strip()):
            raise PydanticCustomError(
                "INVALID_COLOR_HEX",
                "Invalid color hex format. Expected format: #RGB, #RRGGBB, or #RRGGBBAA",
            )
        return v.strip()

    @field_validator("description", "icon")
    @classmethod
    def _strip(cls, v):
        return _optional_text(v)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    color_hex: str
    icon: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime


# ---------------- Transactions ---------------- #


class TransactionCreate(BaseModel):
    user_id: int
    description: str
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    merchant_name: Optional[str] = None
    transaction_date: Optional[datetime] = None

    @field_validator("description")
    @classmethod
    def _description(cls, v):
        return _required_text(v, "MISSING_DESCRIPTION", "description is required and must be a non-empty string")

    @field_validator("merchant_name")
    @classmethod
    def _merchant(cls, v):
        return _optional_text(v)


class TransactionUpdate(BaseModel):
    user_id: Optional[int] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    merchant_name: Optional[str] = None
    transaction_date: Optional[datetime] = None

    @field_validator("description")
    @classmethod
    def _description(cls, v):
        return _required_text(v, "INVALID_DESCRIPTION", "Description must be a non-empty string")

    @field_validator("merchant_name")
    @classmethod
    def _merchant(cls, v):
        return _optional_text(v)

    @field_validator("user_id", "transaction_date")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise PydanticCustomError(f"INVALID_{info.field_name.upper()}", f"{info.field_name} cannot be null")
        return v


class TransactionBulkCreate(BaseModel):
    transactions: List[TransactionCreate]

    @field_validator("transactions")
    @classmethod
    def _non_empty(cls, v):
        if not v:
            raise PydanticCustomError("EMPTY_TRANSACTIONS_ARRAY", "transactions array cannot be empty")
        return v


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    description: str
    amount: Optional[float] = None
    merchant_name: Optional[str] = None
    transaction_date: datetime
    created_at: datetime
    updated_at: datetime


class TransactionBulkOut(BaseModel):
    success: bool = True
    count: int
    transactions: List[TransactionOut]


# ---------------- Predictions ---------------- #


class PredictionCreate(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    transaction_id: int
    category_id: int
    confidence: float
    influential_tokens: Optional[List[str]] = None
    model_version: Optional[str] = None

    @field_validator("confidence")
    @classmethod
    def _confidence(cls, v):
        return _unit_interval(v, "CONFIDENCE_OUT_OF_RANGE", "confidence must be between 0 and 1")


class PredictionUpdate(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    category_id: Optional[int] = None
    confidence: Optional[float] = None
    influential_tokens: Optional[List[str]] = None
    model_version: Optional[str] = None

    @field_validator("category_id")
    @classmethod
    def _category(cls, v):
        if v is None or v <= 0:
            raise PydanticCustomError("INVALID_CATEGORY_ID", "Category ID must be a valid positive integer")
        return v

    @field_validator("confidence")
    @classmethod
    def _confidence(cls, v):
        if v is None:
            raise PydanticCustomError("INVALID_CONFIDENCE", "Confidence must be a number between 0 and 1")
        return _unit_interval(v, "INVALID_CONFIDENCE", "Confidence must be a number between 0 and 1")


class PredictionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    transaction_id: int
    category_id: int
    confidence: float
    influential_tokens: Optional[List[str]] = None
    model_version: str
    created_at: datetime


# ---------------- Feedback ---------------- #


class FeedbackCreate(BaseModel):
    transaction_id: int
    corrected_category_id: int
    user_id: int
    prediction_id: Optional[int] = None
    original_category_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def _notes(cls, v):
        return _optional_text(v)


class FeedbackUpdate(BaseModel):
    prediction_id: Optional[int] = None
    original_category_id: Optional[int] = None
    corrected_category_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("corrected_category_id")
    @classmethod
    def _corrected(cls, v):
        if v is None:
            raise PydanticCustomError(
                "INVALID_CORRECTED_CATEGORY_ID", "corrected_category_id must be a valid integer"
            )
        return v

    @field_validator("notes")
    @classmethod
    def _notes(cls, v):
        return _optional_text(v)


class FeedbackOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    prediction_id: Optional[int] = None
    original_category_id: Optional[int] = None
    corrected_category_id: int
    user_id: int
    notes: Optional[str] = None
    created_at: datetime


# ---------------- Classifier endpoints ---------------- #


class PredictRequest(BaseModel):
    transaction: Any = None
    amount: Any = None
    merchant_name: Optional[str] = None


class PredictResponse(BaseModel):
    category: str
    confidence: float
    influential_tokens: List[str]
    category_id: int
    normalized_input: str


class PredictBatchRequest(BaseModel):
    texts: List[Any]

    @field_validator("texts")
    @classmethod
    def _texts(cls, v):
        if not v:
            raise PydanticCustomError("EMPTY_TEXTS_ARRAY", "texts array cannot be empty")
        if len(v) > MAX_BATCH_TEXTS:
            raise PydanticCustomError(
                "BATCH_TOO_LARGE", "texts array cannot exceed {limit} items", {"limit": MAX_BATCH_TEXTS}
            )
        return v


class ExplainRequest(BaseModel):
    transaction: Optional[str] = None
    amount: Any = None
    merchant_name: Optional[str] = None


class ExplainResponse(BaseModel):
    transaction: str
    category: str
    confidence: float
    influences: List[str]
    narrative: Optional[str] = None


class TaxonomyUpdate(BaseModel):
    categories: List[str]

    @field_validator("categories")
    @classmethod
    def _categories(cls, v):
        cleaned = [c.strip() for c in v if c and c.strip()]
        if not cleaned or len(cleaned) != len(v):
            raise PydanticCustomError("INVALID_CATEGORIES", "Categories must be a non-empty array of names")
        return cleaned
