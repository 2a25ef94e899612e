"""FastAPI application exposing cached language breakdowns."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, List, Optional, TypeVar

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..bootstrap import Runtime, build_runtime
from ..config import load_config
from ..errors import CatalogError, StoreUnavailable
from ..facade import QueryFacade
from ..logging import get_logger
from ..models import AnalysisResult
from ..scheduler import Scheduler

T = TypeVar("T")

logger = get_logger("service")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LanguageEntry(_CamelModel):
    name: str
    type: str
    amount: int
    percentage: float


class LanguagesResponse(_CamelModel):
    entity_ref: str = Field(alias="entityRef")
    language_count: int = Field(alias="languageCount")
    total: int
    unit: str
    processed_date: str = Field(alias="processedDate")
    source_location: Optional[str] = Field(default=None, alias="sourceLocation")
    fresh: bool
    breakdown: List[LanguageEntry]


class RefreshResponse(BaseModel):
    status: str
    entity_ref: str = Field(alias="entityRef")


class HealthResponse(BaseModel):
    status: str


async def _in_executor(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def _to_response(facade: QueryFacade, result: AnalysisResult) -> LanguagesResponse:
    return LanguagesResponse.model_validate(result.breakdown(fresh=facade.is_fresh(result)))


def create_app(
    facade: QueryFacade,
    *,
    scheduler: Scheduler | None = None,
    on_shutdown: Callable[[], None] | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    When ``scheduler`` is given it is started and stopped with the app lifespan.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if scheduler is not None:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                await _in_executor(scheduler.stop)
            if on_shutdown is not None:
                on_shutdown()

    app = FastAPI(title="Linguist Service", version="1.0.0", lifespan=lifespan)

    async def get_facade() -> QueryFacade:
        return facade

    async def _languages(entity_ref: str, facade: QueryFacade) -> LanguagesResponse:
        result = await _in_executor(lambda: facade.get(entity_ref))
        if result is None:
            raise HTTPException(
                status_code=404, detail=f"No language breakdown for {entity_ref}"
            )
        return _to_response(facade, result)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/entities/languages", response_model=List[LanguagesResponse])
    async def list_languages(
        facade: QueryFacade = Depends(get_facade),
    ) -> List[LanguagesResponse]:
        results = await _in_executor(facade.list_all)
        return [_to_response(facade, result) for result in results]

    @app.get("/entities/{entity_ref:path}/languages", response_model=LanguagesResponse)
    async def entity_languages(
        entity_ref: str,
        facade: QueryFacade = Depends(get_facade),
    ) -> LanguagesResponse:
        return await _languages(entity_ref, facade)

    @app.get("/entity-languages", response_model=LanguagesResponse)
    async def entity_languages_by_query(
        entity_ref: str = Query(alias="entityRef"),
        facade: QueryFacade = Depends(get_facade),
    ) -> LanguagesResponse:
        return await _languages(entity_ref, facade)

    @app.post(
        "/entities/{entity_ref:path}/languages/refresh",
        response_model=RefreshResponse,
        status_code=202,
    )
    async def refresh_languages(
        entity_ref: str,
        facade: QueryFacade = Depends(get_facade),
    ) -> RefreshResponse:
        queued = await _in_executor(lambda: facade.refresh(entity_ref))
        if queued is None:
            raise HTTPException(status_code=404, detail=f"Unknown entity {entity_ref}")
        return RefreshResponse(status="accepted", entityRef=entity_ref)

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(_: Any, exc: StoreUnavailable) -> JSONResponse:
        logger.warning("Result store unavailable: %s", exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(_: Any, exc: CatalogError) -> JSONResponse:
        logger.warning("Catalog unavailable: %s", exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    return app


def create_app_from_runtime(runtime: Runtime) -> FastAPI:
    return create_app(runtime.facade, scheduler=runtime.scheduler, on_shutdown=runtime.close)


def run_service(
    config_path: Path, host: str | None = None, port: int | None = None
) -> None:  # pragma: no cover - integration path
    import uvicorn

    config = load_config(config_path)
    runtime = build_runtime(config)
    app = create_app_from_runtime(runtime)
    uvicorn.run(app, host=host or config.service.host, port=port or config.service.port)
