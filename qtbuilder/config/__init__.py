"""User configuration (the settings store)."""

from qtbuilder.config.models import UserConfigData
from qtbuilder.config.user_config import UserConfig, create_user_config


__all__ = ["UserConfig", "UserConfigData", "create_user_config"]
