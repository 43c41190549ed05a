"""Typed params schemas, one per RPC method.

Shape failures (missing field, wrong type) are reported by the router with the
method's declared message. Business rules live in model validators and raise
the project's own errors so their code, message and data survive pydantic.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

from milobanana.providers.registry import SUPPORTED_PLATFORMS
from milobanana.utils.exceptions import InvalidParamsError, ValidationError

NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]


class _Params(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------------------------------------------------------------- auth


class LoginParams(_Params):
    username: NonEmptyStr
    password: NonEmptyStr
    grant_type: Any = None

    @model_validator(mode="before")
    @classmethod
    def _password_grant_only(cls, data: Any) -> Any:
        if isinstance(data, dict):
            grant_type = data.get("grant_type")
            if grant_type and grant_type != "password":
                raise InvalidParamsError(
                    "Only password grant type is supported",
                    {"error": "unsupported_grant_type"},
                )
        return data


class SignupParams(_Params):
    username: NonEmptyStr
    password: NonEmptyStr
    nickname: StrictStr | None = None

    @model_validator(mode="after")
    def _check_lengths(self) -> "SignupParams":
        if not 3 <= len(self.username) <= 50:
            raise ValidationError("Username must be between 3 and 50 characters")
        if len(self.password) < 6:
            raise ValidationError("Password must be at least 6 characters long")
        return self


class WeChatLoginParams(_Params):
    code: NonEmptyStr
    platform: StrictStr | None = None
    user_info: Any = Field(default=None, alias="userInfo")

    def profile_hint(self) -> tuple[str | None, str | None]:
        """(nickname, avatar_url) supplied by the client, if any."""
        if not isinstance(self.user_info, dict):
            return None, None
        nickname = self.user_info.get("nickName")
        avatar_url = self.user_info.get("avatarUrl")
        return (
            nickname if isinstance(nickname, str) and nickname else None,
            avatar_url if isinstance(avatar_url, str) and avatar_url else None,
        )


# ---------------------------------------------------------------- users


class UserIdParams(_Params):
    id: StrictInt


class _PointsParams(_Params):
    user_id: StrictInt = Field(alias="userId")
    points: StrictInt


class UpdatePointsParams(_PointsParams):
    @model_validator(mode="after")
    def _non_negative(self) -> "UpdatePointsParams":
        if self.points < 0:
            raise InvalidParamsError("Points cannot be negative")
        return self


class AddPointsParams(_PointsParams):
    @model_validator(mode="after")
    def _positive(self) -> "AddPointsParams":
        if self.points <= 0:
            raise InvalidParamsError("Points to add must be positive")
        return self


class SubtractPointsParams(_PointsParams):
    @model_validator(mode="after")
    def _positive(self) -> "SubtractPointsParams":
        if self.points <= 0:
            raise InvalidParamsError("Points to subtract must be positive")
        return self


# ---------------------------------------------------------------- config


class ConfigUpdateParams(_Params):
    base_url: StrictStr | None = Field(default=None, alias="baseUrl")
    api_key: StrictStr | None = Field(default=None, alias="apiKey")
    model: StrictStr | None = None

    @model_validator(mode="after")
    def _at_least_one(self) -> "ConfigUpdateParams":
        if not (self.base_url or self.api_key or self.model):
            raise InvalidParamsError("At least one configuration field is required")
        return self


# ---------------------------------------------------------------- prompts


class PromptIdParams(_Params):
    id: StrictInt


class PromptCreateParams(_Params):
    prompt: NonEmptyStr
    category: NonEmptyStr
    title: NonEmptyStr
    description: StrictStr | None = None
    cover_image: StrictStr | None = None
    image_required: Any = None
    variable_required: Any = None

    def record_fields(self) -> dict[str, Any]:
        data = self.model_dump()
        data["variable_required"] = bool(self.variable_required)
        return data


class PromptUpdateParams(_Params):
    id: StrictInt
    prompt: StrictStr | None = None
    category: StrictStr | None = None
    title: StrictStr | None = None
    description: StrictStr | None = None
    cover_image: StrictStr | None = None
    image_required: Any = None
    variable_required: Any = None

    def record_fields(self) -> dict[str, Any]:
        """Only the columns the caller actually sent."""
        return self.model_dump(exclude={"id"}, exclude_unset=True)


# ---------------------------------------------------------------- images


class InlineData(_Params):
    mime_type: StrictStr = Field(alias="mimeType", min_length=1)
    data: NonEmptyStr


class PromptPart(_Params):
    text: StrictStr | None = None
    inline_data: InlineData | None = Field(default=None, alias="inlineData")


class GenerateParams(_Params):
    platform: Literal["gemini", "openai"]
    prompt: list[PromptPart]

    @model_validator(mode="before")
    @classmethod
    def _check_request(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        supported = {"supportedPlatforms": list(SUPPORTED_PLATFORMS)}
        platform = data.get("platform")
        if not platform:
            raise InvalidParamsError("Platform parameter is required", supported)
        prompt = data.get("prompt")
        if not isinstance(prompt, list):
            raise InvalidParamsError("Invalid prompt format. Expected PromptPart[]")
        if platform not in SUPPORTED_PLATFORMS:
            raise InvalidParamsError(f"Unsupported platform: {platform}", supported)
        parts = [part if isinstance(part, dict) else {} for part in prompt]
        if not any(isinstance(p.get("text"), str) and p["text"].strip() for p in parts):
            raise InvalidParamsError("At least one text part is required in the prompt")
        for part in parts:
            inline = part.get("inlineData")
            if not part.get("text") and not inline:
                raise InvalidParamsError("Each prompt part must have either text or inlineData")
            if inline and (not isinstance(inline, dict) or not inline.get("mimeType") or not inline.get("data")):
                raise InvalidParamsError("inlineData must have both mimeType and data")
        return data

    def provider_parts(self) -> list[dict[str, Any]]:
        return [part.model_dump(by_alias=True, exclude_none=True) for part in self.prompt]
