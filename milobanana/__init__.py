"""
milobanana - JSON-RPC gateway for users, prompts and metered image generation.
"""

__version__ = "0.1.0"
__logo__ = "🍌"
