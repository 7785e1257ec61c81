"""
FastAPI приложение геокодера
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from elasticsearch import Elasticsearch
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings, get_elasticsearch_config
from .errors import GeocodingError
from .models import AddressQuery, AddressResults, GeoPoint, StructuredGeocodeRequest
from .parser import RemoteAddressParser
from .search import ElasticsearchFulltextEngine
from .service import GeocodingService

# Настройка логирования
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL))
logger = logging.getLogger(__name__)

# Создание FastAPI приложения
app = FastAPI(
    title="Геокодер",
    description="API геокодирования адресов",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Глобальные переменные для сервисов
es_client = None
geocoding_service: Optional[GeocodingService] = None


def build_service(client: Elasticsearch) -> GeocodingService:
    """Сборка геокодера из настроек"""
    engine = ElasticsearchFulltextEngine(client, settings.ES_INDEX, request_timeout=settings.ES_TIMEOUT)
    parser = None
    if settings.PARSER_URL:
        parser = RemoteAddressParser(settings.PARSER_URL, timeout=settings.PARSER_TIMEOUT)
    return GeocodingService(
        engine,
        parser=parser,
        use_address_parser=settings.USE_ADDRESS_PARSER,
        parsed_address_unlock_key=settings.PARSED_ADDRESS_UNLOCK_KEY,
        exact_page_size=settings.EXACT_RESULTS_PAGE_SIZE,
        street_page_size=settings.STREET_RESULTS_PAGE_SIZE,
    )


@app.on_event("startup")
async def startup_event():
    """Инициализация при запуске"""
    global es_client, geocoding_service

    try:
        # Подключение к Elasticsearch
        es_client = Elasticsearch(**get_elasticsearch_config())

        # Проверка подключения
        if not es_client.ping():
            raise Exception("Не удалось подключиться к Elasticsearch")

        geocoding_service = build_service(es_client)
        logger.info("API успешно инициализировано")

    except Exception as e:
        logger.error(f"Ошибка инициализации: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Очистка при завершении"""
    if es_client:
        es_client.close()


def _get_service() -> GeocodingService:
    if not geocoding_service:
        raise HTTPException(status_code=503, detail="Геокодер не инициализирован")
    return geocoding_service


@app.get("/", response_model=dict)
async def root():
    """Корневой эндпоинт"""
    return {
        "message": "Геокодер API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Проверка здоровья сервиса"""
    status = {
        "status": "healthy",
        "elasticsearch": "unknown",
        "index": settings.ES_INDEX,
        "index_exists": False
    }
    if es_client:
        try:
            if es_client.indices.exists(index=settings.ES_INDEX):
                status["index_exists"] = True
            status["elasticsearch"] = "connected"
        except Exception as e:
            logger.error(f"Ошибка проверки индекса: {e}")
            status["elasticsearch"] = "disconnected"
    return status


@app.get("/geocode", response_model=AddressResults)
async def geocode(
    q: str = Query(..., min_length=1, description="Адрес одной строкой"),
    country: Optional[str] = Query(None, description="Код страны ISO из двух букв"),
    fuzzy: bool = Query(True, description="Повторять в нечётком режиме"),
    postal: bool = Query(False, description="Почтовый адрес (включает парсер)"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: Optional[float] = Query(None, gt=0, description="Радиус в метрах"),
    limit: int = Query(settings.SEARCH_LIMIT, ge=1, le=settings.MAX_SEARCH_LIMIT),
    parsed_address_unlock_key: int = Query(0),
):
    """Геокодирование адреса из свободного текста"""
    try:
        service = _get_service()
        point = GeoPoint(lat=lat, lon=lng) if lat is not None and lng is not None else None
        query = AddressQuery(
            address=q,
            country=country or None,
            fuzzy=fuzzy,
            postal=postal,
            point=point,
            radius=radius,
            limit_nb_result=limit,
            parsed_address_unlock_key=parsed_address_unlock_key,
        )
        logger.info(f"Геокодирование: '{q}', страна={country}")
        return await asyncio.to_thread(service.geocode, query)

    except GeocodingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Ошибка геокодирования: {e}")
        raise HTTPException(status_code=500, detail="Ошибка геокодирования")


@app.post("/geocode/structured", response_model=AddressResults)
async def geocode_structured(request: StructuredGeocodeRequest):
    """Геокодирование структурированного адреса"""
    try:
        service = _get_service()
        query = AddressQuery(
            structured_address=request.address,
            country=request.country or None,
            limit_nb_result=request.limit,
            parsed_address_unlock_key=request.parsed_address_unlock_key,
        )
        return await asyncio.to_thread(service.geocode, query)

    except GeocodingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Ошибка геокодирования адреса: {e}")
        raise HTTPException(status_code=500, detail="Ошибка геокодирования")


@app.get("/analyze", response_model=dict)
async def analyze_query(
    q: str = Query(..., description="Запрос для анализа"),
    country: Optional[str] = Query(None),
) -> Dict[str, Any]:
    """Анализ запроса без обращения к индексу"""
    try:
        return _get_service().analyze(q, country or None)
    except GeocodingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Ошибка анализа запроса: {e}")
        raise HTTPException(status_code=500, detail="Ошибка анализа запроса")


@app.get("/stats", response_model=dict)
async def usage_stats():
    """Счётчики использования"""
    return _get_service().stats.snapshot()


# Обработчик глобальных ошибок
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Необработанная ошибка: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Внутренняя ошибка сервера"}
    )
