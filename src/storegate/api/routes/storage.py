"""Tenant file routes for the storegate API.

Provides file and naming endpoints:
- POST /v1/clients/{client_id}/files (uploadFile)
- GET /v1/clients/{client_id}/files (listFiles)
- GET /v1/clients/{client_id}/files/content (downloadFile)
- DELETE /v1/clients/{client_id}/files (deleteFile)
- GET /v1/clients/{client_id}/buckets (getBucketMapping)
- POST /v1/paths/validate (validatePath)

Storage errors propagate to the exception handlers in storegate.api.errors.
"""

from __future__ import annotations

import logging
import mimetypes
from urllib.parse import quote
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, Request, Response, UploadFile
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from storegate.api.errors import StoregateHttpError
from storegate.storage.errors import InvalidPathError
from storegate.storage.models import DuplicateFileStrategy, Environment
from storegate.storage.path_sanitizer import sanitize_path
from storegate.storage.service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])

_FALLBACK_MEDIA_TYPE = "application/octet-stream"


def _content_disposition(file_name: str) -> str:
    """Attachment header; non-ASCII names go in an RFC 5987 filename* parameter.

    Header values are latin-1 on the wire, so the plain filename keeps only
    ASCII characters (others become "_").
    """
    ascii_name = file_name.encode("ascii", "replace").decode("ascii").replace("?", "_")
    ascii_name = ascii_name.replace("\\", "_").replace('"', "_")
    if ascii_name == file_name:
        return f'attachment; filename="{file_name}"'
    encoded = quote(file_name, safe="")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{encoded}"


class UploadResponse(BaseModel):
    """Response body for a successful upload."""

    client_id: str
    environment: str
    bucket: str
    key: str
    file_name: str
    original_file_name: str
    size_bytes: int
    content_type: str | None = None
    duplicate_strategy: str


class FileListResponse(BaseModel):
    """Response body for GET /v1/clients/{client_id}/files."""

    client_id: str
    environment: str
    bucket: str
    prefix: str
    files: list[str]
    total_files: int


class BucketMappingResponse(BaseModel):
    """Where a client's data lands in every environment."""

    client_id: str
    bucket_strategy: str
    bucket_strategy_description: str
    buckets: dict[str, str]
    prefixes: dict[str, str]


class ValidatePathRequest(BaseModel):
    """Request body for POST /v1/paths/validate."""

    path: str = Field(max_length=4096)


class ValidatePathResponse(BaseModel):
    """Sanitizer verdict for a candidate path."""

    valid: bool
    sanitized: str | None = None
    check: str | None = None


def _get_service(request: Request) -> StorageService:
    service: StorageService = request.app.state.storage_service
    return service


def _parse_environment(raw: str) -> Environment:
    try:
        return Environment.from_value(raw)
    except ValueError as e:
        raise StoregateHttpError(
            status_code=400,
            code="INVALID_ENVIRONMENT",
            message="Unknown environment",
            details={"allowed": [env.value for env in Environment]},
        ) from e


def _parse_duplicate_strategy(raw: str | None) -> DuplicateFileStrategy | None:
    if raw is None or not raw.strip():
        return None
    try:
        return DuplicateFileStrategy.from_code(raw)
    except ValueError as e:
        raise StoregateHttpError(
            status_code=400,
            code="INVALID_DUPLICATE_STRATEGY",
            message="Unknown duplicate file strategy",
            details={"allowed": [strategy.value for strategy in DuplicateFileStrategy]},
        ) from e


@router.post(
    "/v1/clients/{client_id}/files",
    response_model=UploadResponse,
    status_code=201,
)
async def upload_file(
    client_id: str,
    request: Request,
    file: Annotated[UploadFile, File()],
    environment: Annotated[str, Form()],
    directory: Annotated[str | None, Form()] = None,
    file_name: Annotated[str | None, Form()] = None,
    duplicate_strategy: Annotated[str | None, Form()] = None,
    version: Annotated[int | None, Form(ge=1)] = None,
) -> UploadResponse:
    """Upload a file for a client.

    The body is read up to one byte past the configured limit, so oversized
    uploads are rejected without buffering them entirely.

    Args:
        client_id: Tenant identifier.
        request: FastAPI request for app state access.
        file: Multipart file part.
        environment: Target environment tag or name.
        directory: Optional directory under the tenant prefix.
        file_name: Stored name override; defaults to the uploaded filename.
        duplicate_strategy: Duplicate policy code; configured default if omitted.
        version: Explicit version for the "version" policy.

    Returns:
        UploadResponse describing the stored object.

    Raises:
        StoregateHttpError: 400 if environment, policy or file name is missing
            or unknown.
    """
    service = _get_service(request)
    env = _parse_environment(environment)
    policy = _parse_duplicate_strategy(duplicate_strategy)

    name = file_name or file.filename
    if not name:
        raise StoregateHttpError(
            status_code=400,
            code="INVALID_FILE_NAME",
            message="File name is required",
        )

    data = await file.read(service.config.max_file_size_bytes + 1)

    result = await run_in_threadpool(
        service.upload,
        client_id,
        env,
        name,
        data,
        directory=directory,
        content_type=file.content_type,
        duplicate_strategy=policy,
        version=version,
    )

    return UploadResponse(
        client_id=client_id,
        environment=env.tag,
        bucket=result.location.bucket,
        key=result.location.key,
        file_name=result.file_name,
        original_file_name=result.original_file_name,
        size_bytes=result.size_bytes,
        content_type=result.content_type,
        duplicate_strategy=result.duplicate_strategy.value,
    )


@router.get("/v1/clients/{client_id}/files", response_model=FileListResponse)
def list_files(
    client_id: str,
    request: Request,
    environment: Annotated[str, Query()],
) -> FileListResponse:
    """List every stored key for a client and environment."""
    service = _get_service(request)
    env = _parse_environment(environment)

    files = service.list_files(client_id, env)

    return FileListResponse(
        client_id=client_id,
        environment=env.tag,
        bucket=service.resolver.resolve_bucket(client_id, env),
        prefix=service.resolver.key_prefix(client_id, env),
        files=files,
        total_files=len(files),
    )


@router.get("/v1/clients/{client_id}/files/content")
def download_file(
    client_id: str,
    request: Request,
    environment: Annotated[str, Query()],
    file_name: Annotated[str, Query()],
    directory: Annotated[str | None, Query()] = None,
) -> Response:
    """Download a stored file as an attachment.

    The media type is the one recorded at upload, else guessed from the name.
    """
    service = _get_service(request)
    env = _parse_environment(environment)

    stored = service.download(client_id, env, file_name, directory=directory)
    stored_name = stored.location.key.rsplit("/", 1)[-1]
    media_type = (
        stored.content_type or mimetypes.guess_type(stored_name)[0] or _FALLBACK_MEDIA_TYPE
    )

    return Response(
        content=stored.body,
        media_type=media_type,
        headers={"Content-Disposition": _content_disposition(stored_name)},
    )


@router.delete("/v1/clients/{client_id}/files", status_code=204)
def delete_file(
    client_id: str,
    request: Request,
    environment: Annotated[str, Query()],
    file_name: Annotated[str, Query()],
    directory: Annotated[str | None, Query()] = None,
) -> Response:
    """Delete a stored file."""
    service = _get_service(request)
    env = _parse_environment(environment)

    service.delete(client_id, env, file_name, directory=directory)
    return Response(status_code=204)


@router.get("/v1/clients/{client_id}/buckets", response_model=BucketMappingResponse)
def get_bucket_mapping(client_id: str, request: Request) -> BucketMappingResponse:
    """Show the bucket and prefix for the client in every environment."""
    mapping = _get_service(request).bucket_mapping(client_id)

    return BucketMappingResponse(
        client_id=mapping.client_id,
        bucket_strategy=mapping.bucket_strategy.value,
        bucket_strategy_description=mapping.bucket_strategy.description,
        buckets=mapping.buckets,
        prefixes=mapping.prefixes,
    )


@router.post("/v1/paths/validate", response_model=ValidatePathResponse)
def validate_path(request_body: ValidatePathRequest) -> ValidatePathResponse:
    """Run a path through the sanitizer without storing anything.

    A rejected path is a normal result (200 with valid=false), not an error.
    """
    try:
        sanitized = sanitize_path(request_body.path)
    except InvalidPathError as e:
        return ValidatePathResponse(valid=False, check=e.check)

    return ValidatePathResponse(valid=True, sanitized=str(sanitized))
