"""
Конфигурация геокодера
"""
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Настройки приложения"""
    
    # Elasticsearch (полнотекстовый индекс мест)
    ES_URL: str = "http://localhost:9200"
    ES_API_KEY: Optional[str] = None
    ES_USER: Optional[str] = None
    ES_PASS: Optional[str] = None
    ES_INDEX: str = "geocoder_places"
    ES_TIMEOUT: int = 60
    
    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False
    
    # Поиск
    SEARCH_LIMIT: int = 10
    MAX_SEARCH_LIMIT: int = 100
    EXACT_RESULTS_PAGE_SIZE: int = 10
    STREET_RESULTS_PAGE_SIZE: int = 20
    
    # Парсер адресов (внешний сервис)
    USE_ADDRESS_PARSER: bool = False
    PARSER_URL: Optional[str] = None
    PARSER_TIMEOUT: int = 10
    PARSED_ADDRESS_UNLOCK_KEY: int = 0
    
    # Логирование
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Глобальный экземпляр настроек
settings = Settings()


def get_elasticsearch_config():
    """Конфигурация для подключения к Elasticsearch"""
    config = {
        "hosts": [settings.ES_URL],
        "request_timeout": settings.ES_TIMEOUT
    }
    
    # API Key аутентификация (приоритет)
    if settings.ES_API_KEY:
        config["api_key"] = settings.ES_API_KEY
    # Basic Auth (альтернатива)
    elif settings.ES_USER and settings.ES_PASS:
        config["basic_auth"] = (settings.ES_USER, settings.ES_PASS)
    
    return config
