from identity_hub.utils.config.env import Settings, settings

__all__ = ["Settings", "settings"]
