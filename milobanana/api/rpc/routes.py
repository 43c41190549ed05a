"""The service's route namespaces and their closed method sets."""

from __future__ import annotations

from milobanana.api.rpc import (
    auth_methods,
    config_methods,
    health_methods,
    image_methods,
    prompt_methods,
    user_methods,
)
from milobanana.api.rpc.error_boundary import DETAIL_MESSAGE, DETAIL_SERVER_ERROR
from milobanana.api.rpc.params import (
    AddPointsParams,
    ConfigUpdateParams,
    GenerateParams,
    LoginParams,
    PromptCreateParams,
    PromptIdParams,
    PromptUpdateParams,
    SignupParams,
    SubtractPointsParams,
    UpdatePointsParams,
    UserIdParams,
    WeChatLoginParams,
)
from milobanana.api.rpc.router import MethodRouter, MethodSpec, RouteNamespace
from milobanana.auth.principal import AuthRequirement
from milobanana.gateway.rate_limit import RATE_LIMIT_SCOPE_AUTH

NONE = AuthRequirement.NONE
USER = AuthRequirement.USER
ADMIN = AuthRequirement.ADMIN

_POINTS_PARAMS_ERROR = "User ID and points are required"


def build_router() -> MethodRouter:
    return MethodRouter([
        RouteNamespace("health", "/health", {
            "health.check": MethodSpec(health_methods.handle_health_check),
        }),
        RouteNamespace("login", "/api/login", {
            "auth.login": MethodSpec(
                auth_methods.handle_login,
                params_model=LoginParams,
                params_error="Username and password are required",
                params_error_data={"error": "invalid_request"},
                params_missing_error="Login parameters are required",
                failure_message="Internal server error during authentication",
                failure_detail=DETAIL_SERVER_ERROR,
            ),
        }, rate_limit_scope=RATE_LIMIT_SCOPE_AUTH),
        RouteNamespace("signup", "/api/signup", {
            "auth.signup": MethodSpec(
                auth_methods.handle_signup,
                params_model=SignupParams,
                params_error="Username and password are required",
                params_missing_error="Registration parameters are required",
                failure_message="Failed to create user account",
            ),
        }, rate_limit_scope=RATE_LIMIT_SCOPE_AUTH),
        RouteNamespace("wechat_login", "/api/wechat-login", {
            "auth.wechat_login": MethodSpec(
                auth_methods.handle_wechat_login,
                params_model=WeChatLoginParams,
                params_error="WeChat authorization code is required",
                params_missing_error="WeChat login parameters are required",
                failure_message="Internal server error during WeChat authentication",
                failure_detail=DETAIL_SERVER_ERROR,
            ),
        }, rate_limit_scope=RATE_LIMIT_SCOPE_AUTH),
        RouteNamespace("me", "/api/me", {
            "user.profile": MethodSpec(
                user_methods.handle_profile,
                requirement=USER,
                failure_message="Failed to retrieve user profile",
            ),
        }),
        RouteNamespace("users", "/api/users", {
            "users.list": MethodSpec(
                user_methods.handle_list_users,
                requirement=ADMIN,
                failure_message="Failed to retrieve users",
            ),
            "users.get": MethodSpec(
                user_methods.handle_get_user,
                requirement=ADMIN,
                params_model=UserIdParams,
                params_error="User ID is required",
                failure_message="Failed to retrieve user",
            ),
            "users.updatePoints": MethodSpec(
                user_methods.handle_update_points,
                requirement=ADMIN,
                params_model=UpdatePointsParams,
                params_error=_POINTS_PARAMS_ERROR,
                failure_message="Failed to update user points",
            ),
            "users.addPoints": MethodSpec(
                user_methods.handle_add_points,
                requirement=ADMIN,
                params_model=AddPointsParams,
                params_error=_POINTS_PARAMS_ERROR,
                failure_message="Failed to add user points",
            ),
            "users.subtractPoints": MethodSpec(
                user_methods.handle_subtract_points,
                requirement=ADMIN,
                params_model=SubtractPointsParams,
                params_error=_POINTS_PARAMS_ERROR,
                failure_message="Failed to subtract user points",
            ),
        }),
        RouteNamespace("config", "/api/config", {
            "config.get": MethodSpec(
                config_methods.handle_config_get,
                requirement=ADMIN,
                failure_message="Failed to retrieve configuration",
            ),
            "config.update": MethodSpec(
                config_methods.handle_config_update,
                requirement=ADMIN,
                params_model=ConfigUpdateParams,
                params_error="Configuration parameters are required",
                failure_message="Failed to update configuration",
            ),
        }),
        RouteNamespace("prompts", "/api/prompt_store", {
            "prompts.list": MethodSpec(
                prompt_methods.handle_list_prompts,
                failure_message="Failed to retrieve prompts",
            ),
            "prompts.get": MethodSpec(
                prompt_methods.handle_get_prompt,
                params_model=PromptIdParams,
                params_error="Prompt ID is required",
                failure_message="Failed to retrieve prompt",
            ),
            "prompts.create": MethodSpec(
                prompt_methods.handle_create_prompt,
                requirement=ADMIN,
                params_model=PromptCreateParams,
                params_error="Prompt, category, and title are required",
                params_missing_error="Prompt data is required",
                failure_message="Failed to create prompt",
            ),
            "prompts.update": MethodSpec(
                prompt_methods.handle_update_prompt,
                requirement=ADMIN,
                params_model=PromptUpdateParams,
                params_error="Prompt ID and update data are required",
                failure_message="Failed to update prompt",
            ),
            "prompts.delete": MethodSpec(
                prompt_methods.handle_delete_prompt,
                requirement=ADMIN,
                params_model=PromptIdParams,
                params_error="Prompt ID is required",
                failure_message="Failed to delete prompt",
            ),
        }),
        RouteNamespace("images", "/api/images/generations", {
            "images.generate": MethodSpec(
                image_methods.handle_generate,
                requirement=USER,
                params_model=GenerateParams,
                params_error="Invalid prompt format. Expected PromptPart[]",
                failure_message="Failed to generate content",
                failure_detail=DETAIL_MESSAGE,
            ),
        }),
    ])
