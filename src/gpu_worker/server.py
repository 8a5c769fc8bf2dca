"""
HTTP service.

FastAPI application exposing the GIF transforms:

    GET  /health        service status
    POST /mirror-gif    multipart "file"
    POST /blur-gif      multipart "file", optional form "radius"

Every route is also served under /api/v1. Errors are returned as
{"error": ..., "message": ...} with the status code of the error type.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from . import __version__
from .config import ServerConfig
from .errors import GpuWorkerError, InvalidInput, PayloadTooLarge, RequestTimeout
from .pipeline import Blur, Mirror, TransformPipeline
from .processors import Processor

logger = logging.getLogger(__name__)

SERVICE_NAME = 'gpu-worker'
FEATURES = ['mirror-gif', 'blur-gif']
DEFAULT_BLUR_RADIUS = 5.0

ProcessorFactory = Callable[[Any, str], Awaitable[Processor]]


async def default_processor_factory(transform: Any, power_preference: str) -> Processor:
    return await transform.create_processor(power_preference=power_preference)


class ProcessorPool:
    """
    Hands out processors according to the configured policy.

    'per-request' builds a fresh processor (and GPU context) for every
    request and closes it afterwards. 'shared' keeps one processor per
    transform kind for the lifetime of the app; concurrent requests queue
    on the processor's lock.
    """

    def __init__(self, config: ServerConfig, factory: ProcessorFactory):
        self.config = config
        self.factory = factory
        self._shared: Dict[str, Processor] = {}
        self._lock = asyncio.Lock()

    @property
    def shared(self) -> bool:
        return self.config.processor_policy == 'shared'

    async def acquire(self, transform: Any) -> Processor:
        if not self.shared:
            return await self.factory(transform, self.config.power_preference)

        async with self._lock:
            processor = self._shared.get(transform.name)
            if processor is None:
                processor = await self.factory(transform, self.config.power_preference)
                self._shared[transform.name] = processor
            return processor

    def release(self, processor: Processor) -> None:
        if not self.shared:
            processor.close()

    async def warm_up(self) -> None:
        """Create the shared processors up front (shared policy only)."""
        if not self.shared:
            return
        for transform in (Mirror(), Blur()):
            try:
                await self.acquire(transform)
            except GpuWorkerError as e:
                # Requests will retry creation and report the failure
                logger.error("Could not create %s processor at startup: %s", transform.name, e)

    def close(self) -> None:
        for processor in self._shared.values():
            processor.close()
        self._shared.clear()


def create_app(
    config: Optional[ServerConfig] = None,
    processor_factory: Optional[ProcessorFactory] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration (defaults to ServerConfig.from_env())
        processor_factory: Async callable (transform, power_preference)
            returning a processor; defaults to the transform's own GPU
            processor
    """
    if config is None:
        config = ServerConfig.from_env()
    pool = ProcessorPool(config, processor_factory or default_processor_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting %s %s (processor policy: %s)",
            SERVICE_NAME, __version__, config.processor_policy
        )
        await pool.warm_up()
        yield
        pool.close()
        logger.info("Shut down %s", SERVICE_NAME)

    app = FastAPI(title=SERVICE_NAME, version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.pool = pool

    @app.middleware('http')
    async def limit_upload_and_add_version(request: Request, call_next):
        content_length = request.headers.get('content-length')
        if content_length and content_length.isdigit() \
                and int(content_length) > config.max_upload_bytes:
            error = PayloadTooLarge(
                f"Request body is {content_length} bytes, limit is {config.max_upload_bytes}"
            )
            response = JSONResponse(error.to_dict(), status_code=error.status_code)
        else:
            response = await call_next(request)
        response.headers['X-Version'] = __version__
        return response

    @app.exception_handler(GpuWorkerError)
    async def handle_worker_error(request: Request, exc: GpuWorkerError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        error = InvalidInput(f"Invalid request: {exc.errors()}")
        return JSONResponse(error.to_dict(), status_code=error.status_code)

    router = APIRouter()

    @router.get('/health')
    async def health():
        return {
            'status': 'healthy',
            'service': SERVICE_NAME,
            'version': __version__,
            'features': FEATURES,
        }

    @router.post('/mirror-gif')
    async def mirror_gif(file: Optional[UploadFile] = File(None)):
        data = await _read_upload(file, config.max_upload_bytes)
        output = await _transform(pool, Mirror(), data, config)
        return Response(content=output, media_type='image/gif')

    @router.post('/blur-gif')
    async def blur_gif(
        file: Optional[UploadFile] = File(None),
        radius: Optional[str] = Form(None)
    ):
        transform = Blur(radius=_parse_radius(radius))
        data = await _read_upload(file, config.max_upload_bytes)
        output = await _transform(pool, transform, data, config)
        return Response(content=output, media_type='image/gif')

    app.include_router(router)
    app.include_router(router, prefix='/api/v1')

    return app


def _parse_radius(radius: Optional[str]) -> float:
    if radius is None or radius.strip() == '':
        return DEFAULT_BLUR_RADIUS
    try:
        return float(radius)
    except ValueError as e:
        raise InvalidInput(f"radius must be a number, got {radius!r}") from e


async def _read_upload(file: Optional[UploadFile], max_bytes: int) -> bytes:
    if file is None:
        raise InvalidInput("Missing multipart field 'file'")

    data = await file.read()
    if not data:
        raise InvalidInput("Uploaded file is empty")
    if len(data) > max_bytes:
        raise PayloadTooLarge(f"Uploaded file is {len(data)} bytes, limit is {max_bytes}")
    return data


async def _transform(pool: ProcessorPool, transform: Any, data: bytes, config: ServerConfig) -> bytes:
    processor = await pool.acquire(transform)
    try:
        pipeline = TransformPipeline(processor, transform, config.max_decoded_bytes)
        try:
            return await asyncio.wait_for(pipeline.run(data), timeout=config.request_timeout)
        except asyncio.TimeoutError as e:
            raise RequestTimeout(
                f"{transform.name} did not finish within {config.request_timeout:g}s",
                frame_index=pipeline.frame_index
            ) from e
    finally:
        pool.release(processor)
