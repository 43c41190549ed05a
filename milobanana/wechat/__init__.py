"""WeChat login client."""

from milobanana.wechat.client import MINIPROGRAM_PLATFORM, WeChatClient, WeChatProfile, WeChatSession

__all__ = ["MINIPROGRAM_PLATFORM", "WeChatClient", "WeChatProfile", "WeChatSession"]
