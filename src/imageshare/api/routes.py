"""API routes for image upload, download and QR codes."""

import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, HTMLResponse, Response
from fastapi.templating import Jinja2Templates
from qrcode.exceptions import DataOverflowError

from imageshare.core.analytics import build_event, send_event
from imageshare.core.config import TEMPLATE_DIR, Settings, get_settings
from imageshare.core.constants import (
    APP_DESCRIPTION,
    APP_VERSION,
    DEFAULT_IMG_TITLE,
    ERROR_FILE_TOO_LARGE,
    ERROR_IMAGE_NOT_FOUND,
    ERROR_INVALID_UPLOAD,
    ERROR_QR_GENERATION,
    ERROR_SAVE_FAILED,
    ERROR_UNSUPPORTED_TYPE,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    SERVE_RATE_LIMIT,
    SUPPORTED_FILE_STRING,
    SUPPORTED_MIME_TYPES,
    UPLOAD_RATE_LIMIT,
)
from imageshare.core.imgur import RateLimitSentinel, upload_to_imgur
from imageshare.core.models import HealthCheck, UploadResult
from imageshare.core.qr import imgur_link, render_qr_png, upload_link
from imageshare.core.rate_limiter import limiter
from imageshare.core.storage import (
    DeletionScheduler,
    delete_file,
    get_scheduler,
    is_writable,
    save_upload,
)
from imageshare.core.titles import (
    TitleDatabase,
    get_software_title,
    get_title_database,
    tag_image_description,
)
from imageshare.core.utils import generate_upload_name, is_upload_name

logger = logging.getLogger(__name__)

router = APIRouter()
templates = Jinja2Templates(directory=TEMPLATE_DIR)

IMGUR_ID_PATTERN = re.compile(r"^[A-Za-z0-9]+$")

EXTENSION_MIME_TYPES: dict[str, str] = {}
for _mime_type, _extension in SUPPORTED_MIME_TYPES.items():
    EXTENSION_MIME_TYPES.setdefault(_extension, _mime_type)


def _client_headers(request: Request) -> tuple[str, str]:
    """Return the User-Agent and forwarded address of the caller."""
    user_agent = request.headers.get("user-agent", "")
    forwarded_for = request.headers.get("x-forwarded-for") or (
        request.client.host if request.client else ""
    )
    return user_agent, forwarded_for


def _queue_analytics(
    background_tasks: BackgroundTasks,
    request: Request,
    settings: Settings,
    name: str,
    upload_mode: str | None = None,
) -> None:
    if not settings.plausible_domain:
        return
    user_agent, forwarded_for = _client_headers(request)
    event = build_event(settings.plausible_domain, name, upload_mode)
    background_tasks.add_task(send_event, event, user_agent, forwarded_for)


def _render_page(
    request: Request,
    settings: Settings,
    result: UploadResult | None = None,
) -> HTMLResponse:
    """Render the main page, with a result panel after an upload."""
    user_agent = request.headers.get("user-agent", "")
    # The old 3DS browser needs a fixed viewport, the New 3DS handles scaling
    old_3ds = "Nintendo 3DS" in user_agent and "New Nintendo 3DS" not in user_agent
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "description": APP_DESCRIPTION,
            "domain": settings.web_domain,
            "fixed_viewport": old_3ds,
            "nintendo": "Nintendo" in user_agent,
            "result": result,
            "delete_delay": settings.delete_delay,
            "accept": ",".join(SUPPORTED_MIME_TYPES),
            "supported_types": SUPPORTED_FILE_STRING,
            "upload_limit": settings.upload_limit,
            "imgur_enabled": settings.imgur_enabled and not settings.external_dir,
        },
    )


def _validate_upload(img: UploadFile | None) -> str:
    """Validate the uploaded file and return its MIME type."""
    if img is None or not img.filename:
        logger.error("Invalid upload, no file received")
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=ERROR_INVALID_UPLOAD)
    if img.content_type not in SUPPORTED_MIME_TYPES:
        logger.error("Invalid upload, unsupported MIME type %s", img.content_type)
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST,
            detail=ERROR_UNSUPPORTED_TYPE,
        )
    return img.content_type


def _validate_file_size(content: bytes, settings: Settings) -> None:
    """Validate file size."""
    if not content:
        logger.error("Invalid upload, empty file")
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=ERROR_INVALID_UPLOAD)
    if len(content) > settings.upload_limit_bytes:
        file_size_mb = len(content) / (1024 * 1024)
        detail = (
            f"{ERROR_FILE_TOO_LARGE} Maximum allowed size is {settings.upload_limit}MB, "
            f"your file size: {file_size_mb:.1f}MB"
        )
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=detail)


def _qr_response(text: str) -> Response:
    try:
        png = render_qr_png(text)
    except (DataOverflowError, ValueError) as err:
        logger.error("QR generation for %s failed: %s", text, err)
        raise HTTPException(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ERROR_QR_GENERATION,
        ) from err
    return Response(content=png, media_type="image/png")


@router.get("/", response_class=HTMLResponse)
@router.get("/index.html", response_class=HTMLResponse)
@router.get("/index.php", response_class=HTMLResponse)
async def main_page(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Annotated[Settings, Depends(get_settings)],
) -> HTMLResponse:
    """Main page. /index.php keeps bookmarks of the old PHP version working."""
    _queue_analytics(background_tasks, request, settings, "pageview")
    return _render_page(request, settings)


@router.post("/", response_class=HTMLResponse)
@router.post("/index.html", response_class=HTMLResponse)
@router.post("/index.php", response_class=HTMLResponse)
@limiter.limit(UPLOAD_RATE_LIMIT)
async def upload_image(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Annotated[Settings, Depends(get_settings)],
    scheduler: Annotated[DeletionScheduler, Depends(get_scheduler)],
    titles: Annotated[TitleDatabase, Depends(get_title_database)],
    img: Annotated[UploadFile | None, File()] = None,
    imgur: Annotated[bool, Form()] = False,
) -> HTMLResponse:
    """Upload image."""
    mime_type = _validate_upload(img)
    content = await img.read()
    _validate_file_size(content, settings)

    name = generate_upload_name(mime_type)
    try:
        path = save_upload(settings.storage_dir, name, content)
    except OSError as err:
        logger.exception("Failed to save upload %s", name)
        raise HTTPException(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ERROR_SAVE_FAILED,
        ) from err
    logger.info("Uploaded image: %s, MIME type %s", path, mime_type)

    try:
        result = await _process_upload(
            path, request, background_tasks, settings, scheduler, titles, imgur,
        )
    except Exception:
        # Nothing would ever delete the file once the request has failed
        delete_file(path)
        raise

    return _render_page(request, settings, result)


async def _process_upload(
    path: Path,
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings,
    scheduler: DeletionScheduler,
    titles: TitleDatabase,
    imgur: bool,
) -> UploadResult:
    """Resolve the title of a saved upload and hand it to its destination."""
    title = await run_in_threadpool(get_software_title, path, titles)
    if title != DEFAULT_IMG_TITLE:
        logger.info("Detected software title for %s: %s", path.name, title)
        await run_in_threadpool(tag_image_description, path, title)

    if settings.external_dir:
        # Uploads to a custom directory are kept, they are never mirrored or deleted
        _queue_analytics(background_tasks, request, settings, "Upload", "Native")
        return UploadResult(title=title, external_dir=str(settings.external_dir))

    if imgur and settings.imgur_enabled:
        imgur_result = await upload_to_imgur(
            path,
            title,
            settings.imgur_client_id,
            RateLimitSentinel(settings.rate_limit_file),
        )
        if imgur_result.response_received:
            _queue_analytics(background_tasks, request, settings, "Upload", "Imgur")
        return UploadResult(title=title, imgur=imgur_result)

    scheduler.schedule(path, settings.delete_delay * 60)
    _queue_analytics(background_tasks, request, settings, "Upload", "Native")
    return UploadResult(
        title=title,
        upload_url=f"/uploads/{path.name}",
        qr_url=f"/qr/{path.name}",
    )


@router.get("/uploads/{name}")
@limiter.limit(SERVE_RATE_LIMIT)
async def download_image(
    name: str,
    request: Request,  # noqa: ARG001
    settings: Annotated[Settings, Depends(get_settings)],
) -> FileResponse:
    """Serve an upload as a download rather than an inline preview."""
    image_path = settings.upload_dir / name
    if not is_upload_name(name) or not image_path.is_file():
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=ERROR_IMAGE_NOT_FOUND)

    return FileResponse(
        path=image_path,
        media_type=EXTENSION_MIME_TYPES[image_path.suffix],
        filename=name,
    )


@router.get("/qr/imgur/{image_id}")
@limiter.limit(SERVE_RATE_LIMIT)
async def imgur_qr_code(
    image_id: str,
    request: Request,  # noqa: ARG001
) -> Response:
    """QR code for an image mirrored to Imgur."""
    if not IMGUR_ID_PATTERN.match(image_id):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=ERROR_IMAGE_NOT_FOUND)
    return _qr_response(imgur_link(image_id))


@router.get("/qr/{name}")
@limiter.limit(SERVE_RATE_LIMIT)
async def qr_code(
    name: str,
    request: Request,  # noqa: ARG001
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    """QR code linking to an upload."""
    if not is_upload_name(name):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=ERROR_IMAGE_NOT_FOUND)
    return _qr_response(upload_link(settings.public_base_url, name))


@router.get("/health")
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthCheck:
    """Health check endpoint."""
    return HealthCheck(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=APP_VERSION,
        storage_writable=is_writable(settings.storage_dir),
    )
