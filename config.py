"""Configuration settings for the FS Server."""
import os
from pathlib import Path

# Network
HOST = os.getenv("FS_SERVER_HOST", "0.0.0.0")
PORT = int(os.getenv("FS_SERVER_PORT", "3000"))

# Directory paths
BASE_DIR = os.getenv("FS_SERVER_BASE_DIR", str(Path.home() / "fs-server-files"))
LOGS_DIR = os.getenv("FS_SERVER_LOGS_DIR", "logs")

# Streaming
STREAM_CHUNK_SIZE = 1_000_000  # Max bytes in a single partial response
READ_CHUNK_SIZE = 8192  # 8KB I/O buffer

# Logging
LOG_LEVEL = os.getenv("FS_SERVER_LOG_LEVEL", "INFO")

# CORS
CORS_ORIGINS = [o.strip() for o in os.getenv("FS_SERVER_CORS_ORIGINS", "*").split(",") if o.strip()]
