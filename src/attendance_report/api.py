"""FastAPI application for the attendance report viewer."""

import uuid
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any

import httpx
from fastapi import (
    FastAPI,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
    status,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from attendance_report.config import settings, validate_settings_on_startup
from attendance_report.models import (
    AttendanceResponse,
    DailyResponse,
    DetailsResponse,
    EmployeesResponse,
    ErrorDetail,
    FilesListResponse,
    HealthResponse,
    PingResponse,
    StoredFileInfo,
    WhatsAppSendResponse,
)
from attendance_report.services.attendance_service import AttendanceService
from attendance_report.services.file_store import FileStore
from attendance_report.services.media_signing import MediaSigner
from attendance_report.services.retention import purge_expired_media
from attendance_report.services.whatsapp_relay import (
    DEFAULT_IMAGE_NAME,
    RelayConfigStore,
    WhatsAppConfig,
    WhatsAppRelay,
    decode_data_url,
)
from attendance_report.services.workbook_loader import SUPPORTED_EXTENSIONS
from attendance_report.utils.exceptions import (
    AttendanceReportError,
    ErrorCode,
    FileTooLargeError,
    MissingParameterError,
    ReportFileNotFoundError,
    RequestError,
)
from attendance_report.utils.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

# Configure structured logging using settings
configure_logging(level=settings.log_level_int, structured=True)
logger = get_logger(__name__)

VERSION = "0.1.0"


def _clean(value: str | None) -> str | None:
    """Trim a query value; blank counts as missing."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _require_file(file: str | None) -> str:
    file = _clean(file)
    if file is None:
        raise MissingParameterError("Missing file param", parameters=["file"])
    return file


def _require_employee_query(
    number: str | None, name: str | None
) -> tuple[str | None, str | None]:
    number, name = _clean(number), _clean(name)
    if number is None and name is None:
        raise MissingParameterError(
            "Provide number or name", parameters=["number", "name"]
        )
    return number, name


def default_whatsapp_config() -> WhatsAppConfig:
    """Provider settings from the environment, before any UI overrides."""
    return WhatsAppConfig(
        endpoint=settings.whatsapp_endpoint,
        appkey=settings.whatsapp_appkey.get_secret_value(),
        authkey=settings.whatsapp_authkey.get_secret_value(),
        template_id=settings.whatsapp_template_id,
        image_host=settings.public_base_url,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        purge_expired_media(media_dir, settings.media_url_ttl_seconds)
        app.state.http_client = httpx.AsyncClient(
            timeout=settings.whatsapp_timeout_seconds
        )
        try:
            yield
        finally:
            await app.state.http_client.aclose()
            app.state.http_client = None

    app = FastAPI(
        title="Attendance Report API",
        description=(
            "Reads monthly attendance spreadsheets, summarizes each employee's "
            "month and relays rendered reports over WhatsApp."
        ),
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    validate_settings_on_startup(settings)

    file_store = FileStore(settings.upload_dir, allowed_extensions=SUPPORTED_EXTENSIONS)
    media_dir = Path(settings.media_dir)
    app.state.file_store = file_store
    app.state.attendance = AttendanceService(file_store)
    app.state.signer = MediaSigner(
        settings.get_media_signing_key(), ttl_seconds=settings.media_url_ttl_seconds
    )
    app.state.relay_config = RelayConfigStore(
        settings.relay_config_path, defaults=default_whatsapp_config()
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Any:
        """Assign a request ID, expose it in logs and echo it in the response."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        set_request_id(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()

    @app.exception_handler(AttendanceReportError)
    async def app_exception_handler(
        request: Request, exc: AttendanceReportError
    ) -> JSONResponse:
        """Render application errors with their error code and HTTP status."""
        request_id = getattr(request.state, "request_id", get_request_id())
        log = logger.warning if exc.http_status < 500 else logger.error
        log(
            f"Request failed: {exc.message}",
            error_code=exc.error_code.value,
            http_status=exc.http_status,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=ErrorDetail(
                detail=exc.message,
                error_code=exc.error_code.value,
                details=exc.details if exc.details else None,
                request_id=request_id,
            ).model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        """Custom exception handler for HTTP exceptions."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorDetail(
                detail=str(exc.detail),
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", get_request_id())
        errors = [
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        logger.warning("Request validation failed", errors=errors)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorDetail.from_error_code(
                ErrorCode.INVALID_PARAMETER,
                detail="Invalid request parameters",
                details={"validation_errors": errors},
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all exception handler for unexpected errors.

        Logs the full exception and returns a generic error response
        to avoid leaking internal details.
        """
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.exception(
            f"Unexpected error: {type(exc).__name__}",
            error_type=type(exc).__name__,
        )
        if settings.debug:
            detail = f"Internal server error: {type(exc).__name__}: {exc}"
        else:
            detail = "Internal server error. Please try again later."

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorDetail(
                detail=detail,
                error_code=ErrorCode.INTERNAL_ERROR.value,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> dict[str, Any]:
        """Check the health status of the service."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": VERSION,
        }

    @app.get("/api/ping", response_model=PingResponse, tags=["Health"])
    async def ping() -> dict[str, Any]:
        return {"message": settings.ping_message}

    # =========================================================================
    # Files
    # =========================================================================

    @app.post(
        "/api/files",
        response_model=StoredFileInfo,
        status_code=status.HTTP_201_CREATED,
        tags=["Files"],
        responses={
            400: {"model": ErrorDetail, "description": "Missing or unsupported file"},
            413: {"model": ErrorDetail, "description": "File too large"},
        },
    )
    async def upload_file(
        file: Annotated[
            UploadFile | None, File(description="Monthly attendance workbook")
        ] = None,
    ) -> StoredFileInfo:
        """Store an uploaded monthly spreadsheet under a generated filename."""
        if file is None or not file.filename:
            raise MissingParameterError(
                "A spreadsheet file must be provided", parameters=["file"]
            )

        content = await file.read()
        if len(content) > settings.max_file_size_bytes:
            logger.warning(
                "File too large",
                file_size=len(content),
                max_size=settings.max_file_size_bytes,
            )
            raise FileTooLargeError(
                file_size=len(content), max_size=settings.max_file_size_bytes
            )

        stored = await run_in_threadpool(file_store.save, file.filename, content)
        return StoredFileInfo.model_validate(stored.to_dict())

    @app.get("/api/files", response_model=FilesListResponse, tags=["Files"])
    def list_files() -> FilesListResponse:
        """List uploaded spreadsheets, newest first."""
        return FilesListResponse(
            files=[
                StoredFileInfo.model_validate(f.to_dict())
                for f in file_store.list_files()
            ]
        )

    @app.delete(
        "/api/files/{file_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        tags=["Files"],
        responses={404: {"model": ErrorDetail, "description": "File not found"}},
    )
    def delete_file(file_id: str) -> Response:
        file_store.delete(file_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # =========================================================================
    # Attendance
    # =========================================================================

    attendance_errors: dict[int | str, dict[str, Any]] = {
        400: {
            "model": ErrorDetail,
            "description": "Missing parameters, unreadable workbook or no "
            "'present' sheet",
        },
        404: {"model": ErrorDetail, "description": "File or employee not found"},
    }

    @app.get(
        "/api/attendance/employees",
        response_model=EmployeesResponse,
        tags=["Attendance"],
        responses=attendance_errors,
    )
    def get_employees(
        request: Request, file: Annotated[str | None, Query()] = None
    ) -> EmployeesResponse:
        """List employees found in the attendance sheet of a stored file."""
        file_id = _require_file(file)
        employees = request.app.state.attendance.employees(file_id)
        return EmployeesResponse.model_validate(
            {"file": file_id, "employees": [asdict(e) for e in employees]}
        )

    @app.get(
        "/api/attendance/summary",
        response_model=AttendanceResponse,
        response_model_exclude_none=True,
        tags=["Attendance"],
        responses=attendance_errors,
    )
    def get_summary(
        request: Request,
        file: Annotated[str | None, Query()] = None,
        number: Annotated[str | None, Query()] = None,
        name: Annotated[str | None, Query()] = None,
    ) -> AttendanceResponse:
        """Monthly totals for one employee, looked up by number or name."""
        file_id = _require_file(file)
        number, name = _require_employee_query(number, name)
        result = request.app.state.attendance.summary(file_id, number=number, name=name)
        return AttendanceResponse.model_validate(
            {"file": file_id, **asdict(result)}
        )

    @app.get(
        "/api/attendance/daily",
        response_model=DailyResponse,
        tags=["Attendance"],
        responses=attendance_errors,
    )
    def get_daily(
        request: Request,
        file: Annotated[str | None, Query()] = None,
        number: Annotated[str | None, Query()] = None,
        name: Annotated[str | None, Query()] = None,
    ) -> DailyResponse:
        """Per-day codes and overtime for one employee's calendar."""
        file_id = _require_file(file)
        number, name = _require_employee_query(number, name)
        result = request.app.state.attendance.daily(file_id, number=number, name=name)
        return DailyResponse.model_validate(
            {"file": file_id, **asdict(result)}
        )

    @app.get(
        "/api/attendance/details",
        response_model=DetailsResponse,
        response_model_exclude_none=True,
        tags=["Attendance"],
        responses=attendance_errors,
    )
    def get_details(
        request: Request,
        file: Annotated[str | None, Query()] = None,
        number: Annotated[str | None, Query()] = None,
        name: Annotated[str | None, Query()] = None,
    ) -> DetailsResponse:
        """Contact details recorded beside the attendance grid."""
        file_id = _require_file(file)
        number, name = _require_employee_query(number, name)
        result = request.app.state.attendance.details(
            file_id, number=number, name=name
        )
        return DetailsResponse.model_validate(
            {"file": file_id, **asdict(result)}
        )

    # =========================================================================
    # Media
    # =========================================================================

    @app.get(
        "/media/{filename}",
        tags=["Media"],
        responses={
            403: {"model": ErrorDetail, "description": "Invalid signature"},
            404: {"model": ErrorDetail, "description": "Media not found"},
            410: {"model": ErrorDetail, "description": "Link expired"},
        },
    )
    async def get_media(
        request: Request,
        filename: str,
        expires: Annotated[int, Query()],
        signature: Annotated[str, Query()],
    ) -> FileResponse:
        """Serve a report image to the messaging provider via a signed link."""
        request.app.state.signer.verify(filename, expires, signature)
        if not FileStore.is_safe_id(filename) or not (media_dir / filename).is_file():
            raise ReportFileNotFoundError(filename)
        return FileResponse(media_dir / filename)

    # =========================================================================
    # WhatsApp relay
    # =========================================================================

    @app.get("/api/whatsapp/config", tags=["WhatsApp"])
    async def get_whatsapp_config(request: Request) -> dict[str, Any]:
        """Current provider settings with credentials masked."""
        config: WhatsAppConfig = request.app.state.relay_config.load()
        return config.masked()

    @app.put(
        "/api/whatsapp/config",
        tags=["WhatsApp"],
        responses={400: {"model": ErrorDetail, "description": "Missing fields"}},
    )
    async def put_whatsapp_config(
        request: Request, config: WhatsAppConfig
    ) -> dict[str, Any]:
        """Persist provider settings entered in the settings page."""
        missing = config.missing_fields()
        if missing:
            raise MissingParameterError(
                "Enter endpoint, appkey and authkey", parameters=missing
            )
        saved = request.app.state.relay_config.save(config)
        return {"ok": True, "config": saved.masked()}

    @app.post(
        "/api/whatsapp/send",
        response_model=WhatsAppSendResponse,
        tags=["WhatsApp"],
        responses={
            400: {"model": ErrorDetail, "description": "Missing fields or image"},
            502: {"model": ErrorDetail, "description": "Provider rejected message"},
            503: {"model": ErrorDetail, "description": "Provider unreachable"},
        },
    )
    async def send_whatsapp(
        request: Request,
        to: Annotated[str | None, Form()] = None,
        message: Annotated[str | None, Form()] = None,
        template_id: Annotated[str | None, Form(alias="templateId")] = None,
        image_data_url: Annotated[str | None, Form(alias="imageDataUrl")] = None,
        endpoint: Annotated[str | None, Form()] = None,
        appkey: Annotated[str | None, Form()] = None,
        authkey: Annotated[str | None, Form()] = None,
        file: Annotated[UploadFile | None, File()] = None,
    ) -> dict[str, Any]:
        """Send a rendered report image with a message to one recipient."""
        to, message = _clean(to), _clean(message)
        missing = [
            name for name, value in (("to", to), ("message", message)) if not value
        ]
        if missing:
            raise MissingParameterError("Missing to/message", parameters=missing)

        if file is not None and file.filename:
            image = await file.read()
            mime = file.content_type or "image/png"
            image_name = file.filename
        elif image_data_url:
            try:
                image, mime = decode_data_url(image_data_url)
            except ValueError as e:
                raise RequestError(
                    str(e), ErrorCode.INVALID_PARAMETER, {"field": "imageDataUrl"}
                ) from e
            image_name = DEFAULT_IMAGE_NAME
        else:
            raise MissingParameterError(
                "Missing file or imageDataUrl", parameters=["file", "imageDataUrl"]
            )

        config: WhatsAppConfig = request.app.state.relay_config.load()
        overrides = {
            key: value
            for key, value in (
                ("endpoint", _clean(endpoint)),
                ("appkey", _clean(appkey)),
                ("authkey", _clean(authkey)),
            )
            if value
        }
        if overrides:
            config = config.model_copy(update=overrides)

        relay = WhatsAppRelay(
            config,
            request.app.state.http_client,
            signer=request.app.state.signer,
            media_dir=media_dir,
            public_base_url=settings.public_base_url,
        )
        assert to is not None and message is not None
        response = await relay.send(
            to,
            message,
            image,
            mime=mime,
            filename=image_name,
            template_id=_clean(template_id),
        )
        logger.info("WhatsApp message sent", to=to)
        return {"ok": True, "response": response}

    logger.info("FastAPI application created successfully")
    return app


# Create the application instance
app = create_app()
