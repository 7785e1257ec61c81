from .settings import Settings, settings, get_elasticsearch_config

__all__ = ["Settings", "settings", "get_elasticsearch_config"]
