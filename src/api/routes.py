"""Table generation, scrape, saved-table and export endpoint handlers."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sse_starlette.sse import EventSourceResponse

from src.api.schemas import (
    ErrorResponse,
    GenerateRequest,
    SavedTable,
    SavedTableSummary,
    ScrapeRequest,
    ScrapeResponse,
    Table,
    TableResult,
)
from src.api.service import render_export, scrape_content, stream_generation
from src.auth.dependencies import require_api_key, require_user_id
from src.store.redis import TableStore
from src.tables.engine import TableEngine

router = APIRouter(
    dependencies=[Depends(require_api_key)],
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)


def _errors(*codes: int) -> dict[int | str, dict]:
    return {code: {"model": ErrorResponse} for code in codes}


_GENERATE_ERRORS = _errors(400, 422, 500, 502)
_SCRAPE_ERRORS = _errors(400, 422)
_STORE_ERRORS = _errors(503)
_OWNED_ERRORS = _errors(404, 503)

ExportFormat = Literal["csv", "markdown"]


def _get_engine(request: Request) -> TableEngine:
    return request.app.state.engine


def _get_store(request: Request) -> TableStore:
    return request.app.state.store


async def _owned_table(table_id: str, user_id: str, store: TableStore) -> SavedTable:
    table = await store.get(table_id)
    if table is None or table.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found")
    return table


def _export_response(table: Table, fmt: ExportFormat) -> Response:
    body, media_type, filename = render_export(table, fmt)
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/tables/generate", response_model=TableResult, responses=_GENERATE_ERRORS)
async def generate_table(
    body: GenerateRequest,
    engine: TableEngine = Depends(_get_engine),
):
    if body.mode == "stream":
        # Reject bad input with a plain 400 before opening the event stream
        engine.validate_request(body.url_list(), body.prompt)
        return EventSourceResponse(stream_generation(engine, body))
    return await engine.generate(body.url_list(), body.prompt)


@router.post("/scrape", response_model=ScrapeResponse, responses=_SCRAPE_ERRORS)
async def scrape(
    body: ScrapeRequest,
    engine: TableEngine = Depends(_get_engine),
):
    return await scrape_content(engine, body)


@router.post(
    "/tables",
    response_model=SavedTable,
    status_code=status.HTTP_201_CREATED,
    responses=_STORE_ERRORS,
)
async def save_table(
    body: Table,
    user_id: str = Depends(require_user_id),
    store: TableStore = Depends(_get_store),
):
    return await store.save(user_id, body)


@router.get("/tables", response_model=list[SavedTableSummary], responses=_STORE_ERRORS)
async def list_tables(
    user_id: str = Depends(require_user_id),
    store: TableStore = Depends(_get_store),
):
    return await store.list_for_user(user_id)


@router.post("/tables/export")
async def export_unsaved_table(
    body: Table,
    format: ExportFormat = Query("csv"),
):
    return _export_response(body, format)


@router.get("/tables/{table_id}", response_model=SavedTable, responses=_OWNED_ERRORS)
async def get_table(
    table_id: str,
    user_id: str = Depends(require_user_id),
    store: TableStore = Depends(_get_store),
):
    return await _owned_table(table_id, user_id, store)


@router.delete("/tables/{table_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_OWNED_ERRORS)
async def delete_table(
    table_id: str,
    user_id: str = Depends(require_user_id),
    store: TableStore = Depends(_get_store),
):
    table = await _owned_table(table_id, user_id, store)
    await store.delete(table)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/tables/{table_id}/export", responses=_OWNED_ERRORS)
async def export_table(
    table_id: str,
    format: ExportFormat = Query("csv"),
    user_id: str = Depends(require_user_id),
    store: TableStore = Depends(_get_store),
):
    table = await _owned_table(table_id, user_id, store)
    return _export_response(table, format)
