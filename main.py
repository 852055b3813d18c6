from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.datastructures import UploadFile as FormFile

import config
from app.services.errors import FileServiceError, NoFileProvided, NotFound, StorageUnavailable
from app.services.file_service import FileService
from logger_config import setup_logger

# Logger setup
logger = setup_logger()


def create_app(base_dir: Optional[Path] = None) -> FastAPI:
    """Build the FS Server app storing files under `base_dir` (defaults to config.BASE_DIR)."""
    base_dir = Path(base_dir or config.BASE_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create and initialize file service
        app.state.file_service = FileService(base_dir)
        await app.state.file_service.initialize()
        yield

    app = FastAPI(title="FS Server", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
    )

    @app.exception_handler(FileServiceError)
    async def file_service_error_handler(request: Request, exc: FileServiceError):
        if isinstance(exc, StorageUnavailable):
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.post("/upload")
    async def upload_file(request: Request):
        """Store an uploaded file under a new timestamped name."""
        file_service = request.app.state.file_service
        form = await request.form()
        file = form.get("file")
        # A text field or a form submitted with no file chosen carries no upload
        if not isinstance(file, FormFile) or not file.filename:
            file = None
        logger.info(f"Receiving upload request for file: {file.filename if file else None}")

        try:
            stored = await file_service.upload(file)
        except NoFileProvided as e:
            logger.warning(f"Upload rejected: {e.message}")
            return JSONResponse({"error": e.message}, status_code=e.status_code)

        return {
            "message": "File uploaded",
            "filename": stored.stored_name,
            "original": stored.original_name,
        }

    @app.get("/files")
    async def list_files(request: Request):
        """List stored file names."""
        file_service = request.app.state.file_service
        logger.info("Receiving list request")
        return await file_service.list_files()

    @app.get("/files/{name}")
    async def get_file(name: str, request: Request):
        """Download a whole file."""
        file_service = request.app.state.file_service
        logger.info(f"Receiving download request for file: {name}")

        content = await file_service.retrieve(name)
        return StreamingResponse(
            content.chunks,
            media_type=content.content_type,
            headers={"Content-Length": str(content.size)},
        )

    @app.get("/stream/{name}")
    async def stream_file(name: str, request: Request, range_header: Optional[str] = Header(None, alias="range")):
        """Download a file, or one chunk of it when a Range header is sent."""
        file_service = request.app.state.file_service
        logger.info(f"Receiving stream request for file: {name}, range: {range_header}")

        try:
            delivery, chunks = await file_service.stream(name, range_header)
        except NotFound:
            logger.warning(f"Stream rejected: {name} not found")
            return Response(status_code=404)

        if delivery.status == 416:
            return Response(status_code=416, headers=delivery.headers)

        return StreamingResponse(
            chunks,
            status_code=delivery.status,
            media_type="application/octet-stream",
            headers=delivery.headers,
        )

    @app.delete("/files/{name}")
    async def delete_file(name: str, request: Request):
        """Delete a stored file."""
        file_service = request.app.state.file_service
        logger.info(f"Receiving delete request for file: {name}")

        await file_service.delete(name)
        return {"message": "File deleted"}

    return app


app = create_app()


if __name__ == "__main__":
    logger.info(f"FS server running on port {config.PORT}")
    logger.info(f"Files stored in {config.BASE_DIR}")
    uvicorn.run(app, host=config.HOST, port=config.PORT)
