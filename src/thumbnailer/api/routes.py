"""API route definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, UploadFile, status

from thumbnailer.api.middleware import read_limited_upload, verify_api_key
from thumbnailer.api.schemas import (
    BlobDecodeRequest,
    BlobEncodeResponse,
    CachedThumbnailResponse,
    ErrorResponse,
    HealthResponse,
    ThumbnailOptionsModel,
    ThumbnailRequest,
    ThumbnailResponse,
)
from thumbnailer.imaging.codec import Blob, blob_to_data_url, data_url_to_blob
from thumbnailer.imaging.errors import (
    ConversionError,
    DecodeError,
    NetworkFetchError,
    RenderQueueFullError,
    ThumbnailError,
)

if TYPE_CHECKING:
    from thumbnailer.imaging.cache import ThumbnailCache
    from thumbnailer.imaging.options import ThumbnailOptions
    from thumbnailer.imaging.render_pool import RenderPool
    from thumbnailer.imaging.service import ThumbnailResult, ThumbnailService

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

_CONVERSION_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}


def _get_service(request: Request) -> ThumbnailService:
    service: ThumbnailService = request.app.state.thumbnail_service
    return service


def _get_render_pool(request: Request) -> RenderPool:
    pool: RenderPool = request.app.state.render_pool
    return pool


def _get_cache(request: Request) -> ThumbnailCache:
    cache: ThumbnailCache = request.app.state.thumbnail_cache
    return cache


def _http_error(exc: ThumbnailError | ValueError) -> HTTPException:
    """Map a pipeline failure onto an HTTP error."""
    if isinstance(exc, RenderQueueFullError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Render queue is full")
    if isinstance(exc, NetworkFetchError):
        code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, DecodeError | ValueError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))


def _resolve_options(request: Request, overrides: ThumbnailOptionsModel) -> ThumbnailOptions:
    try:
        return overrides.merge(_get_service(request).default_options)
    except ValueError as exc:
        raise _http_error(exc) from exc


def _to_response(result: ThumbnailResult) -> ThumbnailResponse:
    return ThumbnailResponse(
        data_url=result.data_url,
        width=result.width,
        height=result.height,
        format=result.format,
        size=result.size,
    )


@router.post(
    "/thumbnails",
    response_model=ThumbnailResponse,
    responses=_CONVERSION_RESPONSES,
    summary="Generate a thumbnail from a URL or data URL",
)
async def create_thumbnail(request: Request, body: ThumbnailRequest) -> ThumbnailResponse:
    """Fetch or decode the source, resize it and return the encoded thumbnail."""
    options = _resolve_options(request, body.options)
    try:
        result = await _get_service(request).generate(body.source, options)
    except ThumbnailError as exc:
        raise _http_error(exc) from exc

    if body.cache_id is not None:
        _get_cache(request).put(body.cache_id, result.data_url)
    return _to_response(result)


@router.post(
    "/thumbnails/upload",
    response_model=ThumbnailResponse,
    responses={**_CONVERSION_RESPONSES, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: {"model": ErrorResponse}},
    summary="Generate a thumbnail from an uploaded image file",
)
async def upload_thumbnail(
    request: Request,
    file: UploadFile,
    max_width: Annotated[int | None, Form(ge=1)] = None,
    max_height: Annotated[int | None, Form(ge=1)] = None,
    quality: Annotated[float | None, Form()] = None,
    format: Annotated[str | None, Form()] = None,  # noqa: A002
    background_color: Annotated[str | None, Form()] = None,
    cache_id: Annotated[str | None, Form()] = None,
) -> ThumbnailResponse:
    """Resize an uploaded image file and return the encoded thumbnail."""
    try:
        overrides = ThumbnailOptionsModel(
            max_width=max_width,
            max_height=max_height,
            quality=quality,
            format=format,
            background_color=background_color,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    options = _resolve_options(request, overrides)
    data = await read_limited_upload(request, file)

    try:
        result = await _get_service(request).generate_from_bytes(data, options)
    except ThumbnailError as exc:
        raise _http_error(exc) from exc

    if cache_id is not None:
        _get_cache(request).put(cache_id, result.data_url)
    return _to_response(result)


@router.get(
    "/thumbnails/cache/{thumbnail_id}",
    response_model=CachedThumbnailResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Fetch a cached thumbnail",
)
async def get_cached_thumbnail(request: Request, thumbnail_id: str) -> CachedThumbnailResponse:
    entry = _get_cache(request).get(thumbnail_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No cached thumbnail '{thumbnail_id}'")
    return CachedThumbnailResponse(id=entry.id, data_url=entry.data_url, created_at=entry.created_at)


@router.delete(
    "/thumbnails/cache/{thumbnail_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Remove a cached thumbnail",
)
async def delete_cached_thumbnail(request: Request, thumbnail_id: str) -> Response:
    if not _get_cache(request).remove(thumbnail_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No cached thumbnail '{thumbnail_id}'")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/blobs/decode",
    response_class=Response,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
    summary="Convert a data URL into raw bytes",
)
async def decode_blob(body: BlobDecodeRequest) -> Response:
    """Return the data URL's payload with its declared content type."""
    try:
        blob = data_url_to_blob(body.data_url)
    except ConversionError as exc:
        raise _http_error(exc) from exc
    return Response(content=blob.data, media_type=blob.content_type)


@router.post(
    "/blobs/encode",
    response_model=BlobEncodeResponse,
    responses={status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: {"model": ErrorResponse}},
    summary="Wrap an uploaded file in a data URL",
)
async def encode_blob(request: Request, file: UploadFile) -> BlobEncodeResponse:
    """Encode the uploaded bytes as a base64 data URL without re-encoding the image."""
    data = await read_limited_upload(request, file)
    blob = Blob(data=data, content_type=file.content_type or "application/octet-stream")
    return BlobEncodeResponse(data_url=blob_to_data_url(blob), content_type=blob.content_type, size=blob.size)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    pool = _get_render_pool(request)
    return HealthResponse(
        status="ok",
        concurrent_renders=pool.active_count,
        queue_depth=pool.queue_depth,
        cached_thumbnails=len(_get_cache(request)),
    )
