import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, List, Optional, Tuple

import aiofiles
import aiofiles.os
from fastapi import UploadFile

import config
from app.services import range_planner
from app.services.errors import NoFileProvided, NotFound, StorageUnavailable
from app.services.naming import derive_stored_name
from app.services.path_resolver import PathResolver
from app.services.range_planner import DeliveryPlan
from logger_config import setup_logger

logger = setup_logger()


@dataclass
class StoredFileDescriptor:
    stored_name: str
    original_name: str


@dataclass
class FileContent:
    size: int
    content_type: str
    chunks: AsyncIterator[bytes]


async def read_window(path: Path, start: int, length: int,
                      chunk_size: int = config.READ_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield `length` bytes of the file at `path` starting at `start`.

    The file is opened on first iteration, so a response that never starts
    holds no handle, and it is closed even if the consumer stops early
    (e.g. client disconnect).
    """
    try:
        async with aiofiles.open(path, 'rb') as handle:
            await handle.seek(start)
            remaining = length
            while remaining > 0:
                chunk = await handle.read(min(chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk
    except FileNotFoundError:
        # Deleted after the download was planned
        raise NotFound()


async def _no_content() -> AsyncIterator[bytes]:
    for chunk in ():
        yield chunk


class FileService:
    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir).absolute()
        self.resolver = PathResolver(self.base_dir)

    async def initialize(self):
        """Create the base directory if it doesn't exist."""
        logger.info("Initializing file service...")
        await aiofiles.os.makedirs(self.base_dir, exist_ok=True)
        logger.info(f"Files stored in {self.base_dir}")

    async def _existing_path(self, name: str) -> Path:
        path = self.resolver.resolve(name)
        if not await aiofiles.os.path.isfile(path):
            raise NotFound()
        return path

    async def upload(self, upload_file: Optional[UploadFile]) -> StoredFileDescriptor:
        """Write an uploaded file to the base directory under a new stored name.

        Args:
            upload_file: The uploaded file, or None if the request carried none

        Returns:
            The stored name and the client's original name

        Raises:
            NoFileProvided: If there is no file
            InvalidName: If the derived name could escape the base directory
            StorageUnavailable: If writing fails
        """
        if upload_file is None:
            raise NoFileProvided()

        original_name = upload_file.filename or ""
        stored_name = derive_stored_name(original_name)
        path = self.resolver.resolve(stored_name)

        try:
            # Save content using chunks for memory efficiency
            content_size = 0
            async with aiofiles.open(path, 'wb') as f:
                while chunk := await upload_file.read(config.READ_CHUNK_SIZE):
                    content_size += len(chunk)
                    await f.write(chunk)
        except Exception as e:
            logger.error(f"Error writing {stored_name}: {str(e)}", exc_info=True)
            # Don't leave a partial file behind
            if await aiofiles.os.path.exists(path):
                await aiofiles.os.unlink(path)
            if isinstance(e, OSError):
                raise StorageUnavailable(str(e))
            raise

        logger.info(f"Stored {original_name!r} as {stored_name} ({content_size} bytes)")
        return StoredFileDescriptor(stored_name=stored_name, original_name=original_name)

    async def list_files(self) -> List[str]:
        """Names in the base directory, in directory enumeration order."""
        try:
            return await aiofiles.os.listdir(self.base_dir)
        except OSError as e:
            raise StorageUnavailable(str(e))

    async def retrieve(self, name: str) -> FileContent:
        """Full content of a stored file, with its size and inferred content type."""
        path = await self._existing_path(name)
        try:
            size = (await aiofiles.os.stat(path)).st_size
        except FileNotFoundError:
            raise NotFound()

        content_type, _ = mimetypes.guess_type(name)
        return FileContent(
            size=size,
            content_type=content_type or "application/octet-stream",
            chunks=read_window(path, 0, size),
        )

    async def stream(self, name: str, range_header: Optional[str]) -> Tuple[DeliveryPlan, AsyncIterator[bytes]]:
        """
        Plan a (possibly partial) download.

        Args:
            name: Stored name
            range_header: Value of the Range request header, if any

        Returns:
            The delivery plan and a byte stream bounded to its window
        """
        path = await self._existing_path(name)
        try:
            file_size = (await aiofiles.os.stat(path)).st_size
        except FileNotFoundError:
            raise NotFound()

        delivery = range_planner.plan(range_header, file_size)
        logger.debug(f"Stream plan for {name}: status={delivery.status} "
                     f"start={delivery.start} end={delivery.end} size={file_size}")

        if delivery.status == 416:
            return delivery, _no_content()

        return delivery, read_window(path, delivery.start, delivery.length)

    async def delete(self, name: str):
        """Remove a stored file."""
        path = await self._existing_path(name)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            raise NotFound()
        except OSError as e:
            raise StorageUnavailable(str(e))
        logger.info(f"Deleted {name}")
