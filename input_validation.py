# input_validation.py
import re
import uuid
from typing import Literal, Optional

import markdown
import pydantic
from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field, field_validator

import settings
from error_handler import ValidationError

_UNSAFE_TAGS = ["script", "style", "iframe", "object", "embed", "form"]
_SEARCH_UNSAFE = re.compile(r"[^\w\s\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF]")
_RESERVED_NAMES = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$", re.IGNORECASE)

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
    "image/svg+xml": ".svg",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/ogg": ".ogg",
    "video/avi": ".avi",
    "video/mov": ".mov",
    "video/wmv": ".wmv",
}

ResponseLanguage = Literal["ja", "en"]


# ---------- sanitizers ----------

def sanitize_string(value: str) -> str:
    return re.sub(r"['\";]", "", re.sub(r"[<>]", "", value)).strip()[:1000]


def sanitize_search_query(query: str) -> str:
    return _SEARCH_UNSAFE.sub("", query).strip()[:100]


def sanitize_html(value: str) -> str:
    value = re.sub(r"[<>]", "", value)
    value = re.sub(r"javascript:", "", value, flags=re.IGNORECASE)
    value = re.sub(r"on\w+=", "", value, flags=re.IGNORECASE)
    return value.strip()


def sanitize_filename(filename: str) -> str:
    name = re.sub(r'[<>:"|?*]', "", filename)
    name = name.replace("..", ".")
    name = re.sub(r"[\\/]", "_", name)
    name = name.replace("\x00", "")
    name = name.strip(".")
    name = _RESERVED_NAMES.sub(lambda m: f"_{m.group(1)}_", name)
    return name.strip()[:250]


def render_markdown_safe(text: str) -> str:
    """Markdown to HTML with scripts, frames and inline handlers stripped from the output."""
    soup = BeautifulSoup(markdown.markdown(text, extensions=["fenced_code", "tables"]), "lxml")
    for tag in soup.find_all(_UNSAFE_TAGS):
        tag.decompose()
    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            value = tag.attrs[attr]
            if attr.lower().startswith("on"):
                del tag.attrs[attr]
            elif isinstance(value, str) and value.strip().lower().startswith("javascript:"):
                del tag.attrs[attr]
    body = soup.body
    return body.decode_contents() if body else ""


def ensure_file_extension(filename: str, mime_type: str) -> str:
    sanitized = sanitize_filename(filename)
    if re.search(r"\.[a-zA-Z0-9]+$", sanitized):
        return sanitized
    ext = MIME_EXTENSIONS.get(mime_type)
    if ext:
        return sanitized + ext
    if mime_type.startswith("image/"):
        return sanitized + ".jpg"
    if mime_type.startswith("video/"):
        return sanitized + ".mp4"
    return sanitized + ".bin"


# ---------- schemas ----------

class CreatePromptInput(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(default="", max_length=1000)
    content: str = Field(min_length=10, max_length=50_000)
    category_id: Optional[uuid.UUID] = None
    is_public: bool = True
    is_premium: bool = False
    price: float = Field(default=0, ge=0, le=10_000)

    @field_validator("title", "description")
    @classmethod
    def _sanitize(cls, v: str) -> str:
        return sanitize_string(v)


class SearchQueryInput(BaseModel):
    query: str = Field(min_length=1, max_length=100)
    category: Optional[str] = None
    page: int = Field(default=1, ge=1, le=1000)
    limit: int = Field(default=20, ge=1, le=100)

    @field_validator("query")
    @classmethod
    def _sanitize(cls, v: str) -> str:
        return sanitize_search_query(v)


class UpdateProfileInput(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=100)

    @field_validator("display_name", "bio", "location")
    @classmethod
    def _sanitize(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v) if v is not None else v


class CodeGenerationInput(BaseModel):
    prompt: str = Field(min_length=1, max_length=2000)
    framework: Optional[Literal["react", "vue", "vanilla", "nextjs", "svelte", "auto"]] = None
    language: ResponseLanguage = "ja"
    styling: Optional[Literal["css", "tailwind", "styled-components", "emotion", "auto"]] = None
    complexity: Optional[Literal["simple", "intermediate", "advanced", "auto"]] = None
    model: Optional[str] = Field(default=settings.DEFAULT_MODEL, max_length=100)

    @field_validator("prompt")
    @classmethod
    def _strip(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt is required")
        return v.strip()


class ExistingUICode(BaseModel):
    html: str = ""
    css: str = ""
    js: str = ""


class UIGenerationInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(min_length=1, max_length=2000)
    existing_code: Optional[ExistingUICode] = Field(default=None, alias="existingCode")
    is_iteration: bool = Field(default=False, alias="isIteration")
    model: Optional[str] = Field(default=settings.DEFAULT_MODEL, max_length=100)
    language: ResponseLanguage = "ja"

    @field_validator("prompt")
    @classmethod
    def _strip(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt is required")
        return v.strip()


class ImproveCodeInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_code: str = Field(min_length=1, max_length=200_000, alias="originalCode")
    improvement_request: str = Field(min_length=1, max_length=2000, alias="improvementRequest")
    framework: str = Field(default="vanilla", max_length=50)
    model: Optional[str] = Field(default=settings.DEFAULT_MODEL, max_length=100)
    language: ResponseLanguage = "ja"


def validate_request(schema: type[BaseModel], data):
    """Parse ``data`` with ``schema`` or raise ValidationError listing every bad field."""
    try:
        return schema.model_validate(data if data is not None else {})
    except pydantic.ValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        summary = ", ".join(f"{d['field']}: {d['message']}" for d in details)
        raise ValidationError(f"Validation failed: {summary}", details=details) from e
